"""Connection registry, channel subscriptions and cluster routing for a connection gateway."""

__version__ = "0.1.0"