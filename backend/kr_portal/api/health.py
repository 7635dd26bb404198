from fastapi import APIRouter, HTTPException, Request

router = APIRouter()


@router.get('/healthz')
def healthz():
    return {"status": "ok"}


@router.get('/readyz')
async def readyz(request: Request):
    if getattr(request.app.state, "backend", None) is None:
        raise HTTPException(status_code=503, detail='Not ready')
    return {"status": "ready"}
