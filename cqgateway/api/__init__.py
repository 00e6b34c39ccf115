"""HTTP and JSON-RPC surfaces for cqgateway."""
