"""
Guide2Umrah Backend: Services Layer
=====================================

What:  Business logic between the routes (HTTP) and the database.

Service Inventory:
    - AuthService:          login, token signing, admin accounts
    - ImageService:         photo validation and the S3-compatible image host
    - OfferingService:      Package and Service CRUD (one class, two instances)
    - SubscriptionService:  launch mailing list
    - EmailService:         SMTP confirmation mails

Each module exposes a ready-to-use singleton (`auth_service`, ...), so the
same logic serves the routers and the CLI.
"""
