"""
Structured logging for HodlerTrack Crawler.

JSON logs with timestamp, event_type, crawler_id and connection fields.
Use get_logger() in every module for aggregation-friendly output.
"""

from hodlertrack_crawler.crawler_logging.logger import bind_crawler, get_logger

__all__ = ["bind_crawler", "get_logger"]
