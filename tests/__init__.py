"""
Group Availability Tests

Running Tests:
    # Unit tests (no network)
    pytest tests/unit -v

    # Smoke tests against a running instance
    E2E_BASE_URL=http://localhost:3000 pytest tests/e2e -v

Test Coverage:
    - Expiring value cache
    - Discovery window cover
    - Meevo client (token, roster, scan)
    - Provider directory
    - Window scanner against a capped upstream
    - Availability aggregation
    - Concurrent, group and same-stylist matching
    - Engine validation and failure mapping
    - HTTP routes and health checks
"""
