"""
Base data source interface.
"""

from abc import ABC, abstractmethod

from pollution_proxy.services.client import UpstreamClient


class BaseDataSource(ABC):
    """
    Abstract base class for upstream data sources.

    All data sources should:
    - Use UpstreamClient for HTTP requests (typed errors, timeouts)
    - Return Pydantic models or plain values, never raw responses
    """

    def __init__(self, client: UpstreamClient):
        self.client = client

    @property
    @abstractmethod
    def service_id(self) -> str:
        """Unique identifier for this data source."""
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if the data source is properly configured."""
        ...
