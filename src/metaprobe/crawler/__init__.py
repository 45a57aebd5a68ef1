from .http_client import CrawlerResponse, HttpClient

__all__ = ["CrawlerResponse", "HttpClient"]
