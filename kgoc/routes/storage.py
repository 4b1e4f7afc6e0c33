from fastapi import APIRouter, Depends

from ..auth.security import get_current_user_id
from ..services.profiles import get_storage_stats
from ..storage.factory import get_local_store
from ..storage.provider import KeyValueStore


router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("/stats")
def stats(
    _uid: str = Depends(get_current_user_id),
    local: KeyValueStore = Depends(get_local_store),
):
    return get_storage_stats(local).to_response()
