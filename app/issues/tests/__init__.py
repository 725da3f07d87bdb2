"""
Tests for the issues app.

Test modules:
- test_models: Issue and Resolution state transitions
- test_lifecycle: Reporting, review, appeal, conclude/reopen, carrier claims
- test_messaging: Issue thread messaging
- test_processing: Reprint and refund processing (idempotency, rollback, recovery)
- test_resolutions: Order-level resolutions and direct refunds
- test_tasks: Auto-close and stuck-processing sweeps
- test_views: API endpoints and permissions
"""
