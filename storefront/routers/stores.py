"""Store views, gated by the store's subscription."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.dependencies import require_owner_subscription, require_public_store_subscription
from storefront.models.store import Store
from storefront.schemas.store import PublicStoreResponse, StoreResponse, TemplateUpdate

router = APIRouter(prefix="/stores", tags=["stores"])


def _own_store(store_name: str, store: Store) -> Store:
    if store.name != store_name:
        raise HTTPException(status_code=403, detail="You do not own this store")
    return store


@router.get("/{store_name}/public", response_model=PublicStoreResponse)
def get_public_store(store: Store = Depends(require_public_store_subscription)):
    return store


@router.get("/{store_name}", response_model=StoreResponse)
def get_owner_store(store_name: str, store: Store = Depends(require_owner_subscription)):
    return _own_store(store_name, store)


@router.patch("/{store_name}/template", response_model=StoreResponse)
def update_template(
    store_name: str,
    data: TemplateUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(require_owner_subscription),
):
    store = _own_store(store_name, store)
    store.template_name = data.template_name
    db.commit()
    db.refresh(store)
    return store
