"""HTTP layer: routing, controllers, templates and middleware."""
