"""Page-number pagination shared by list endpoints.

Clients pass ``page`` and ``limit``; responses carry the rows under
``results`` and a ``pagination`` block with page metadata.
"""

from django.conf import settings
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class ProjectPagination(PageNumberPagination):
    page_size = getattr(settings, "API_PAGE_SIZE", 10)
    page_size_query_param = "limit"
    max_page_size = getattr(settings, "API_MAX_PAGE_SIZE", 100)

    def get_paginated_response(self, data):
        page = self.page
        return Response(
            {
                "results": data,
                "pagination": {
                    "current_page": page.number,
                    "total_pages": page.paginator.num_pages,
                    "total_items": page.paginator.count,
                    "items_per_page": page.paginator.per_page,
                    "has_next_page": page.has_next(),
                    "has_prev_page": page.has_previous(),
                },
            }
        )

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "properties": {
                "results": schema,
                "pagination": {
                    "type": "object",
                    "properties": {
                        "current_page": {"type": "integer"},
                        "total_pages": {"type": "integer"},
                        "total_items": {"type": "integer"},
                        "items_per_page": {"type": "integer"},
                        "has_next_page": {"type": "boolean"},
                        "has_prev_page": {"type": "boolean"},
                    },
                },
            },
        }
