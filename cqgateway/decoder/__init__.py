"""cq decoder bridge: subprocess execution and typed decoder calls."""

from cqgateway.decoder.client import (
    DecoderClient,
    QueryOptions,
    build_query_arguments,
    coerce_transaction_input,
    prepare_input,
)
from cqgateway.decoder.process import ProcessBridge, ProcessInvocation, ProcessResult, resolve_decoder_path

__all__ = [
    "DecoderClient",
    "ProcessBridge",
    "ProcessInvocation",
    "ProcessResult",
    "QueryOptions",
    "build_query_arguments",
    "coerce_transaction_input",
    "prepare_input",
    "resolve_decoder_path",
]
