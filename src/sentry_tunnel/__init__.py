"""
Sentry Tunnel -- same-origin relay for Sentry envelopes.

Browsers POST envelopes to the tunnel, which reads the destination DSN
from the envelope header, checks it against the configured allow-lists
and forwards the untouched bytes to the real Sentry instance.
"""

__version__ = "1.2.0"
__author__ = "Phoenix Link (Pty) Ltd"
