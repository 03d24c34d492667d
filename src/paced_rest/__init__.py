"""paced-rest: throttled, rate-limit aware, paginating REST client layer."""

__version__ = "0.1.0"
