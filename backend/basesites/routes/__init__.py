"""
BaseSites Backend: API Routes Package
=====================================

Route Inventory:
    - health.py:          GET    /health
    - locations.py:       GET    /locations
    - saved_locations.py: POST   /locations/save
                          GET    /locations/saved
                          DELETE /locations/unsave
    - submissions.py:     POST   /locations/submissions
                          GET    /locations/submissions
                          GET    /locations/submissions/{id}
                          PATCH  /locations/submissions/{id}
                          DELETE /locations/submissions/{id}
                          GET    /locations/submission-limits
    - admin.py:           GET    /admin/submissions
                          PATCH  /admin/submissions/{id}
                          POST   /admin/locations
                          PATCH  /admin/locations/{id}
                          DELETE /admin/locations/{id}      (SUPERUSER)
    - logbook.py:         POST / GET /logbook, PATCH / DELETE /logbook/{id}
    - profile.py:         GET / PATCH /profile, DELETE /delete-account
    - subscriptions.py:   POST   /subscriptions/webhook
                          POST   /subscriptions/restore

Routes stay thin: parse the request, call one service, wrap the result in
the ApiResponse envelope. Business rules live in services/.
"""
