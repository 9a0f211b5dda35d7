from fastapi import APIRouter, Request, Response

router = APIRouter()


@router.get("/healthz")
async def healthz():
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request):
    ready = getattr(request.app.state, "ready_event", None)
    if ready is not None and ready.is_set():
        return {"status": "ready"}
    return Response(status_code=503, content="not ready")
