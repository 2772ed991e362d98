# Services package init
"""
BaseSites Backend: Services Layer
=================================

What:  Domain rules between the HTTP layer and the database.
How:   Services are stateless; each call receives the request's AsyncSession.
       External collaborators are passed to constructors, so tests swap in
       fakes without patching.

Service Inventory:
    - access_policy: Role hierarchy and `authorize()`
    - identity_service: IdentityGateway (abstract) + HTTP client for the
      external identity provider
    - quota_service: QuotaTracker, pending/daily submission caps
    - submission_service: SubmissionService, the submission lifecycle
    - location_service, saved_location_service, logbook_service,
      profile_service, subscription_service: direct CRUD with their rules
"""
