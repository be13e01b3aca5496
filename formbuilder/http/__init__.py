"""HTTP plumbing: problem+json errors, request ids and bearer identity."""
