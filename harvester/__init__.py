"""Timeline harvester: lease-coordinated, resumable timeline crawling."""

__version__ = "0.1.0"
