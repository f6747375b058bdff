# Routes package init
"""
Storefront Backend — API Routes Package
=========================================

Route Inventory:
    - products.py:    /products      (CRUD, count, featured, gallery upload)
    - categories.py:  /categories    (CRUD)
    - health.py:      GET /health    (service health check)

Routes stay thin: they read the request (form fields, files, query
params), call a service, and return its result. Business rules live in
storefront.services.
"""
