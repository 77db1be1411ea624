"""Internal modules for Kube SDK.

WARNING: This package contains system-level modules used by the Client.
These are not intended for direct use in application code.

Modules:
    dispatch - Bounded-mailbox dispatch in front of the transport
    transport - Transport capability protocol
    http - Shared HTTP client configuration and the httpx transport
    errors - API error extraction
    body - Lazily-read response bodies
    watch - Watch stream decoding
    upgrade - Websocket upgrade negotiation
    debug - Debug logging switch
"""
