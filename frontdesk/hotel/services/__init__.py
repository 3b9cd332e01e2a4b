"""
frontdesk/hotel/services/ - front-desk application services

Each service wraps a SQLAlchemy session and an optional event publisher.
"""
