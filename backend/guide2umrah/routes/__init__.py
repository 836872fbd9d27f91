"""
Guide2Umrah Backend: API Routes Package
=========================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - auth.py:           POST /api/login
    - packages.py:       GET/POST /api/packages, GET/PUT/DELETE /api/packages/{id}
    - services.py:       GET/POST /api/services, GET/PUT/DELETE /api/services/{id}
    - subscriptions.py:  POST /api/subscriptions, GET /api/subscriptions
    - health.py:         GET /health
    - frontend.py:       GET /{path} (optional dashboard build)

Routes stay thin: parse the request, call a service, shape the response.
Business rules live in guide2umrah.services.
"""
