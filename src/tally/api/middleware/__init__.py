"""API middleware: request IDs, timing, security headers, and error handling."""
