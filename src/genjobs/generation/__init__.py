"""Generation request handling: models, errors, HTTP surface and service."""
