# rwms/obs/metrics.py
import time

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

http_requests_total = Counter("http_requests_total", "HTTP requests", ["method", "path", "code"])
http_request_duration = Histogram(
    "http_request_duration_seconds", "HTTP request duration seconds", ["method", "path"]
)

# 业务指标
unit_moves_total = Counter("rwms_unit_moves_total", "Committed unit moves", ["source"])
move_denied_total = Counter("rwms_move_denied_total", "Rejected unit moves", ["code"])
picking_tasks_total = Counter("rwms_picking_tasks_total", "Picking task lifecycle events", ["event"])
inventory_cell_scans_total = Counter(
    "rwms_inventory_cell_scans_total", "Inventory cell scans saved"
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        # 用路由模板而不是实际路径，避免 id 撑爆 label 基数
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        http_requests_total.labels(request.method, path, str(response.status_code)).inc()
        http_request_duration.labels(request.method, path).observe(elapsed)
        return response


router = APIRouter()


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
