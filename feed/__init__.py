from feed.reader import FeedClient
from feed.parser import FeedParser

__all__ = ['FeedClient', 'FeedParser']
