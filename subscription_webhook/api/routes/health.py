from fastapi import APIRouter, Request

router = APIRouter()

@router.get("/health")
def health(request: Request):
    store = getattr(request.app.state, "subscription_store", None)
    return {"ok": True, "store_ready": store is not None}
