"""
Tests for the RayDrop draft engine.

Unit test modules (tests/unit):
- test_draft_model: Tests for the draft model and its stored form
- test_validators: Tests for step validation and status badges
- test_draft_lifecycle: Tests for draft CRUD and list views
- test_wizard: Tests for wizard transitions, save and submit
- test_unsaved_guard: Tests for the unsaved-changes guard
- test_bulk_import: Tests for bulk import selection and submission
- test_disposition: Tests for the post-import keep/delete step
- test_authoring_session: Tests for tab / edit / new navigation
- test_entity_cache: Tests for the Xray entity cache
- test_linking: Tests for link selection and enrichment
- test_migration: Tests for the legacy export migration
- test_config: Tests for configuration loading
- test_logger: Tests for structured log output
- test_factory: Tests for infrastructure wiring

Integration test modules (tests/integration):
- test_file_draft_store: File store against a temporary directory
- test_xray_integration: Xray clients with mocked HTTP
"""
