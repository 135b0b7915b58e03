"""mini-bank: signup/login with bearer tokens plus a running-balance ledger."""

__version__ = "0.1.0"
