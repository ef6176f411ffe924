"""
PlaceShare Backend: Services Layer
====================================

Business logic between the routes (HTTP) and the models (persistence).

Service Inventory:
    - Geocoder (abstract): address → coordinates contract
    - GoogleGeocoder: Google Maps Geocoding API implementation
    - FileService: image upload validation, storage and cleanup
    - PlaceService: place reads, creation, update and deletion
    - UserService: account listing, signup and login
"""
