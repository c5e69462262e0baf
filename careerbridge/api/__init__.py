"""HTTP gateway: application factory and middleware."""
