from sidecar_injector.injector import main

if __name__ == "__main__":
    main()
