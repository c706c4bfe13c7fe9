"""Generation Service Interface

Defines the contract for calling the external image generation API.
"""

from abc import ABC, abstractmethod
from typing import Optional
from pydantic import BaseModel, Field
from src.domain.details import GenerationOptions


class GenerationRequest(BaseModel):
    """One generation call; a job issues batch_count of them"""

    prompt: str
    reference_image_urls: list[str] = Field(default_factory=list)
    size: str = "2K"
    options: GenerationOptions = Field(default_factory=GenerationOptions)


class UnitResult(BaseModel):
    """
    Outcome of one generation unit

    Failures are returned, never raised, so the caller can aggregate
    partial results.
    """

    index: int
    success: bool
    urls: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    attempts: int = 0


class GenerationService(ABC):
    @abstractmethod
    async def generate_units(
        self, request: GenerationRequest, count: int
    ) -> list[UnitResult]:
        """
        Run ``count`` generation calls for the same request

        Args:
            request: Prompt, references, size and options
            count: Number of calls (the job's batch_count)

        Returns:
            One UnitResult per call, ordered by index regardless of completion order
        """
        pass
