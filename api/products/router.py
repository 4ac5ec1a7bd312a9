"""
FastAPI router for catalog endpoints.

Handlers only decode the request and call `ProductCatalog`; catalog errors
are turned into responses by the handler registered in `api/main.py`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from . import schemas
from .dependencies import get_catalog, get_max_upload_bytes
from .service import ImageFile, ProductCatalog

router = APIRouter()


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, enforcing a maximum size.
    """
    chunk_size = 1024 * 1024  # 1 MiB
    buf = bytearray()

    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Max is {max_bytes} bytes.",
            )

    return bytes(buf)


async def _image_from_upload(file: UploadFile, max_bytes: int) -> ImageFile:
    data = await read_upload_bytes(file, max_bytes=max_bytes)
    return ImageFile(data=data, filename=file.filename or "", content_type=file.content_type)


@router.get("/products", response_model=list[schemas.ProductListItem])
async def get_products(
    catalog: ProductCatalog = Depends(get_catalog),
) -> list[schemas.ProductListItem]:
    return await catalog.list_products()


@router.post("/products/by-ids", response_model=list[schemas.Product])
async def get_products_by_id_array(
    request: schemas.IdListRequest,
    catalog: ProductCatalog = Depends(get_catalog),
) -> list[schemas.Product]:
    return await catalog.products_by_ids(request.ids)


@router.post("/products/search", response_model=list[schemas.Product])
async def search_products_by_name(
    request: schemas.SearchRequest,
    catalog: ProductCatalog = Depends(get_catalog),
) -> list[schemas.Product]:
    """
    Case-insensitive substring search on product name (at most 8 results).
    """
    return await catalog.search_products(request.search_string)


@router.get("/products/{product_id}", response_model=schemas.Product)
async def get_product_by_id(
    product_id: int,
    catalog: ProductCatalog = Depends(get_catalog),
) -> schemas.Product:
    return await catalog.get_product(product_id)


@router.put("/products/{product_id}", response_model=schemas.Message)
async def update_product(
    product_id: int,
    name: str = Form(...),
    price: str = Form(...),
    discount: str = Form(...),
    description: str | None = Form(default=None),
    file: UploadFile | None = File(default=None),
    catalog: ProductCatalog = Depends(get_catalog),
    max_upload_bytes: int = Depends(get_max_upload_bytes),
) -> schemas.Message:
    """
    Update a product. Sending `file` also replaces its image and description;
    without it only name, price and discount change.
    """
    image = await _image_from_upload(file, max_upload_bytes) if file is not None else None
    return await catalog.update_product(
        product_id,
        name=name,
        price=price,
        discount=discount,
        description=description,
        image=image,
    )


@router.delete("/products/{product_id}", response_model=schemas.Message)
async def delete_product(
    product_id: int,
    catalog: ProductCatalog = Depends(get_catalog),
) -> schemas.Message:
    return await catalog.delete_product(product_id)


@router.get("/subcategories/{subcategory_id}/products", response_model=schemas.SubcategoryBrowse)
async def get_products_by_subcategory_id(
    subcategory_id: int,
    catalog: ProductCatalog = Depends(get_catalog),
) -> schemas.SubcategoryBrowse:
    """
    Category browse page: category, subcategory and the subcategory's products.
    """
    return await catalog.products_by_subcategory(subcategory_id)


@router.post("/subcategories/{subcategory_id}/products", response_model=schemas.ImageUpload)
async def add_product(
    subcategory_id: int,
    name: str = Form(...),
    price: str = Form(...),
    discount: str = Form(...),
    description: str | None = Form(default=None),
    file: UploadFile = File(...),
    catalog: ProductCatalog = Depends(get_catalog),
    max_upload_bytes: int = Depends(get_max_upload_bytes),
) -> schemas.ImageUpload:
    """
    Create a product in a subcategory. The image is uploaded first; the row is
    only written once the upload has succeeded.
    """
    image = await _image_from_upload(file, max_upload_bytes)
    return await catalog.add_product(
        subcategory_id,
        name=name,
        price=price,
        discount=discount,
        description=description,
        image=image,
    )
