"""Background discovery of local repositories by canonical remote."""

from .crawler import CrawlError, LineBuffer, RepositoryCrawler
from .remote_index import RemoteIndex, probe_remotes
from .store import RemoteIndexStore

__all__ = [
    'CrawlError',
    'LineBuffer',
    'RepositoryCrawler',
    'RemoteIndex',
    'RemoteIndexStore',
    'probe_remotes'
]
