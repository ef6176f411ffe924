"""
PlaceShare Backend: API Routes Package
========================================

Route Inventory:
    - places.py:  GET    /api/places/{pid}
                  GET    /api/places/user/{uid}
                  POST   /api/places            (auth, multipart)
                  PATCH  /api/places/{pid}      (auth)
                  DELETE /api/places/{pid}      (auth)
    - users.py:   GET    /api/users
                  POST   /api/users/signup      (multipart)
                  POST   /api/users/login
    - files.py:   GET    /uploads/{path}
    - health.py:  GET    /health

Routes stay thin: extract the request data, call a service, wrap the result.
"""
