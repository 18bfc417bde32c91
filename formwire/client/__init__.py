"""HTTP transport that streams request bodies onto the wire.

Security notes:
- Treat server responses as untrusted input.
- Avoid printing or logging raw upload bytes.
"""

from .http import ChunkedBodyWriter, ClientConfig, FormwireHttpClient, HttpResponse, TransportError

__all__ = [
    "ClientConfig",
    "FormwireHttpClient",
    "HttpResponse",
    "ChunkedBodyWriter",
    "TransportError",
]
