"""Tutor discovery endpoints."""

from typing import Optional

from ..http import ApiClient
from ..models import (
    AvailabilityCell,
    Tutor,
    TutorProfile,
    TutorSearchParams,
    TutorSearchResponse,
)


class TutorApi:
    """Wraps the /tutor endpoints."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def search_tutors(
        self, params: Optional[TutorSearchParams] = None
    ) -> TutorSearchResponse:
        query = (params or TutorSearchParams()).to_query()
        data = await self.client.request_data(
            "GET", "/tutor/search", params=query, error_message="Failed to search tutors"
        )
        return TutorSearchResponse.model_validate(data or {})

    async def get_featured_tutors(self, limit: int = 6) -> list[Tutor]:
        data = await self.client.request_data(
            "GET",
            "/tutor/featured",
            params={"limit": limit},
            error_message="Failed to get featured tutors",
        )
        return [Tutor.model_validate(item) for item in data or []]

    async def get_tutor_profile(self, tutor_id: str) -> TutorProfile:
        data = await self.client.request_data(
            "GET", f"/tutor/{tutor_id}", error_message="Tutor not found"
        )
        return TutorProfile.model_validate(data)

    async def get_filter_languages(self) -> list[str]:
        return await self.client.request_data(
            "GET", "/tutor/filters/languages", error_message="Failed to get languages"
        )

    async def get_filter_specializations(self) -> list[str]:
        return await self.client.request_data(
            "GET",
            "/tutor/filters/specializations",
            error_message="Failed to get specializations",
        )

    async def get_availability(self, tutor_id: str) -> list[AvailabilityCell]:
        data = await self.client.request_data(
            "GET",
            f"/tutor/{tutor_id}/availability",
            error_message="Failed to get availability",
        )
        return [AvailabilityCell.model_validate(item) for item in data or []]
