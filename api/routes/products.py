"""
api/routes/products.py -- Catalog routes for buyers and sellers.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /products           -- public, every product (buyer view)
  GET    /products/mine      -- auth, the caller's own products (seller view)
  POST   /products           -- auth, create; owner is always the caller
  GET    /products/{id}      -- public, one product
  PUT    /products/{id}      -- auth, owner only
  DELETE /products/{id}      -- auth, owner only

Ownership:
  PUT and DELETE go through CatalogService, which asks OwnershipGuard
  before touching the store. A product owned by someone else answers 404
  exactly like a missing one.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request, Response

from api.models import ProductCreate, ProductResponse, ProductUpdate
from auth.dependencies import get_current_identity
from auth.models import Identity
from catalog.service import CatalogService

router = APIRouter()

# Product ids are SQLite INTEGER (signed 64-bit) primary keys.
ProductId = Annotated[int, Path(ge=1, le=2**63 - 1)]


@router.get("/products", response_model=list[ProductResponse])
def list_products(request: Request) -> list[ProductResponse]:
    service: CatalogService = request.app.state.catalog
    return [ProductResponse.from_product(p) for p in service.list_all()]


@router.get("/products/mine", response_model=list[ProductResponse])
def list_my_products(request: Request, identity: Identity = Depends(get_current_identity)) -> list[ProductResponse]:
    service: CatalogService = request.app.state.catalog
    return [ProductResponse.from_product(p) for p in service.list_mine(identity.id)]


@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(
    request: Request,
    body: ProductCreate,
    identity: Identity = Depends(get_current_identity),
) -> ProductResponse:
    service: CatalogService = request.app.state.catalog
    product = service.create(
        identity.id,
        name=body.name,
        price=body.price,
        stock=body.stock,
        description=body.description,
        image_url=body.image_url,
    )
    return ProductResponse.from_product(product)


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(request: Request, product_id: ProductId) -> ProductResponse:
    service: CatalogService = request.app.state.catalog
    return ProductResponse.from_product(service.get(product_id))


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(
    request: Request,
    product_id: ProductId,
    body: ProductUpdate,
    identity: Identity = Depends(get_current_identity),
) -> ProductResponse:
    """Partial update. Only the fields present in the body change."""
    service: CatalogService = request.app.state.catalog
    fields = body.model_dump(exclude_unset=True)
    return ProductResponse.from_product(service.update(identity.id, product_id, fields))


@router.delete("/products/{product_id}", status_code=204)
def delete_product(
    request: Request,
    product_id: ProductId,
    identity: Identity = Depends(get_current_identity),
) -> Response:
    service: CatalogService = request.app.state.catalog
    service.delete(identity.id, product_id)
    return Response(status_code=204)
