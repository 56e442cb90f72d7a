"""
Domain layer containing core business logic and domain services.

Submodules:
- collab: Collab matchmaking logic (slots, status lifecycle, aggregation).
- utils: Domain-specific utilities (e.g., ID generation).
"""
