"""Template model, request building, response resolution and upload orchestration."""
