"""
Domain layer for domain expiry monitoring business logic.

This layer contains:
- Data models and the closed error taxonomy
- Expiry cache with time-based eviction
- Account checks (cache first, WHOIS on a miss)
- Report rendering and report sending decisions
- The monitoring run pipeline
"""
