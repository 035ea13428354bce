"""
Mutating admission webhook for pods.

This webhook injects the configured sidecar containers, volumes and image pull
secrets into pods that opt in by annotation. It never denies a pod outright;
the only non-allowed response is a malformed review, which is reported back
to the API server in ``result.message``.
"""

import logging
from typing import cast

from aiohttp import web
from opentelemetry.trace import SpanKind

from sidecar_injector.constants import (
    ADMISSION_REVIEW_KIND,
    ADMISSION_V1BETA1,
    DEFAULT_WEBHOOK_PATH,
    JSON_CONTENT_TYPE,
    PATCH_TYPE_JSON_PATCH,
)
from sidecar_injector.errors import DeserializationError
from sidecar_injector.models.admission import (
    AdmissionResponse,
    AdmissionReview,
    Status,
)
from sidecar_injector.models.scheme import Scheme
from sidecar_injector.models.sidecar import SidecarSpec
from sidecar_injector.observability.logging import (
    generate_correlation_id,
    set_correlation_id,
)
from sidecar_injector.observability.metrics import metrics_collector
from sidecar_injector.observability.tracing import (
    extract_trace_context,
    traced_span,
)
from sidecar_injector.services.injection_service import decide
from sidecar_injector.services.state import ConfigStore

logger = logging.getLogger(__name__)

# Envelope type assumed when a review carries no apiVersion/kind
DEFAULT_REVIEW_TYPE = (ADMISSION_V1BETA1, ADMISSION_REVIEW_KIND)


class MutationWebhook:
    """aiohttp handler serving mutation AdmissionReviews."""

    def __init__(
        self, store: ConfigStore, scheme: Scheme, path: str = DEFAULT_WEBHOOK_PATH
    ):
        self.store = store
        self.scheme = scheme
        self.path = path

    def register(self, app: web.Application) -> None:
        app.router.add_post(self.path, self.handle)

    async def handle(self, request: web.Request) -> web.Response:
        """
        Handle one AdmissionReview POST.

        Empty bodies (400) and non-JSON content types (415) are rejected
        without an envelope. Everything else gets an AdmissionReview response.
        """
        body = await request.read()
        if not body:
            logger.error("Rejected admission request with empty body")
            metrics_collector.record_rejected_request("empty_body")
            return web.Response(status=400, text="empty body")

        content_type = request.headers.get("Content-Type", "")
        if content_type != JSON_CONTENT_TYPE:
            logger.error(
                f"Rejected admission request with Content-Type={content_type!r}, "
                f"expected {JSON_CONTENT_TYPE}"
            )
            metrics_collector.record_rejected_request("content_type")
            return web.Response(
                status=415,
                text=f"invalid Content-Type, expect `{JSON_CONTENT_TYPE}`",
            )

        try:
            review = cast(AdmissionReview, self.scheme.decode(body, DEFAULT_REVIEW_TYPE))
        except DeserializationError as e:
            set_correlation_id(generate_correlation_id())
            logger.error(f"Can't decode admission review: {e.message}")
            envelope = AdmissionReview(
                api_version=DEFAULT_REVIEW_TYPE[0],
                kind=DEFAULT_REVIEW_TYPE[1],
                response=AdmissionResponse(result=Status(message=e.message)),
            )
            return self._respond(envelope.to_json_bytes())

        admission = review.request
        uid = admission.uid if admission is not None else ""
        operation = admission.operation if admission is not None else None
        set_correlation_id(uid or generate_correlation_id())

        with (
            traced_span(
                "admission_review",
                {
                    "admission.uid": uid,
                    "admission.operation": operation or "",
                    "admission.namespace": (admission.namespace or "")
                    if admission is not None
                    else "",
                },
                kind=SpanKind.SERVER,
                context=extract_trace_context(request.headers),
            ) as span,
            metrics_collector.track_admission(operation) as outcome,
        ):
            async with self.store.read() as active:
                response = self.mutate(review, active.sidecar)
                span.set_attribute("config.generation", active.generation)
                envelope = AdmissionReview(
                    api_version=review.api_version or DEFAULT_REVIEW_TYPE[0],
                    kind=review.kind or DEFAULT_REVIEW_TYPE[1],
                    response=response,
                )
                payload = envelope.to_json_bytes()

            if response.patch is not None:
                outcome["result"] = "injected"
            elif response.allowed:
                outcome["result"] = "skipped"
            span.set_attribute("admission.allowed", response.allowed)

        return self._respond(payload)

    def mutate(self, review: AdmissionReview, sidecar: SidecarSpec) -> AdmissionResponse:
        """
        Build the response for a decoded review.

        Args:
            review: The decoded AdmissionReview
            sidecar: The active sidecar spec

        Returns:
            A response whose ``uid`` equals the request's
        """
        admission = review.request
        if admission is None:
            logger.error("Admission review carries no request")
            return AdmissionResponse(
                result=Status(message="admission review carries no request")
            )

        kind = admission.kind.kind if admission.kind is not None else ""
        user = admission.user_info.username if admission.user_info is not None else ""
        logger.info(
            f"AdmissionReview for Kind={kind}, Namespace={admission.namespace} "
            f"Name={admission.name} UID={admission.uid} "
            f"Operation={admission.operation} UserInfo={user}",
            extra={
                "uid": admission.uid,
                "kind": kind,
                "namespace": admission.namespace,
                "resource_name": admission.name,
                "operation": admission.operation,
            },
        )

        try:
            result = decide(admission.object_, sidecar)
        except DeserializationError as e:
            logger.error(f"Could not decode pod {admission.uid}: {e.message}")
            return AdmissionResponse(uid=admission.uid, result=Status(message=e.message))

        if not result.mutated:
            return AdmissionResponse(uid=admission.uid, allowed=True)

        metrics_collector.record_patch_operations([op.op for op in result.operations])
        logger.info(
            f"Injecting sidecars into {admission.namespace}/{admission.name} "
            f"with {len(result.operations)} patch operations",
            extra={"patch_operations": len(result.operations)},
        )
        return AdmissionResponse(
            uid=admission.uid,
            allowed=True,
            patch=result.patch,
            patch_type=PATCH_TYPE_JSON_PATCH,
        )

    @staticmethod
    def _respond(payload: bytes) -> web.Response:
        return web.Response(body=payload, content_type=JSON_CONTENT_TYPE)
