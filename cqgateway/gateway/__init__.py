"""Gateway-side request admission (rate limiting) and the process-wide runtime."""
