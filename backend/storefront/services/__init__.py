# Services package init
"""
Storefront Backend — Services Layer
=====================================

Service Inventory:
    - FileService:     upload validation, storage, public URLs, cleanup
    - CategoryService: category CRUD and the product → category reference check
    - ProductService:  product CRUD, listing, count, featured list, gallery

Services are constructed once by `create_app()` from explicit settings and
stored on `app.state`; routes resolve them through storefront.dependencies.
"""
