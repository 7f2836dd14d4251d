"""metaboard: Meta Ads performance dashboard with Google Sheets export."""

__version__ = "1.0.0"
