"""Storage Service Interface

Object storage for generated images.
"""

from abc import ABC, abstractmethod


class StorageService(ABC):
    @abstractmethod
    async def download(self, url: str) -> bytes:
        """Fetch a temporary generated image"""
        pass

    @abstractmethod
    async def upload(self, data: bytes, key: str, content_type: str = "image/png") -> str:
        """
        Store an object

        Returns:
            Public URL of the stored object
        """
        pass
