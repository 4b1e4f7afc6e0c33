from fastapi import APIRouter, Depends

from ..storage.factory import get_document_store, get_local_store
from ..storage.provider import DocumentStore, KeyValueStore, StoreError


router = APIRouter(prefix="/integrations", tags=["integrations"])


@router.get("/status")
def status(
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    local_ok = True
    try:
        local.keys()
    except StoreError:
        local_ok = False

    return {
        "db": remote.ping(),
        "localStore": local_ok,
    }
