"""genjobs: orchestrator for long-running media generation jobs.

The package submits a generation request to a Vertex-style prediction API,
polls the returned operation handle and turns whatever artifact the provider
hands back into a self-contained descriptor for the UI.
"""
