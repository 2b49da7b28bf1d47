"""Version information for the OAuth 1.0 provider."""

__version__ = "1.0.0"
__author__ = "spiderhash-io"
__license__ = "MIT"
__description__ = "Server-side OAuth 1.0 request signature verification"
