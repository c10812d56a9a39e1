"""HTTP primitives — Request, Response, Headers, and response encoders."""
