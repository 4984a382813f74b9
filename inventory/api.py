from django.conf import settings
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .permissions import ROLES, HasInventoryRole


def ok(data, status=200):
    return Response({"success": True, "data": data}, status=status)


class InventoryPagination(PageNumberPagination):
    page_size_query_param = "limit"
    max_page_size = 200

    def get_paginated_response(self, data, **extra):
        return ok(
            {
                "results": data,
                **extra,
                "pagination": {
                    "page": self.page.number,
                    "limit": self.page.paginator.per_page,
                    "total": self.page.paginator.count,
                    "pages": self.page.paginator.num_pages,
                },
            }
        )


class LedgerPagination(InventoryPagination):
    page_size = getattr(settings, "LEDGER_PAGE_SIZE", 25)


# Imported after the pagination classes: GenericAPIView resolves
# DEFAULT_PAGINATION_CLASS (this module) while its class body runs.
from rest_framework.generics import GenericAPIView  # noqa: E402


class InventoryAPIView(GenericAPIView):
    """Base for the inventory endpoints: session user plus a role group."""

    permission_classes = [IsAuthenticated, HasInventoryRole]
    pagination_class = InventoryPagination
    required_groups = ROLES
    write_groups = None
