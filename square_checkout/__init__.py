"""Square checkout adapter: cart normalization plus order and payment orchestration."""

__version__ = "1.0.0"
