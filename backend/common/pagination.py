"""
Page-number pagination used by every list endpoint.
"""
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardResultsSetPagination(PageNumberPagination):
    """
    ``?page=2&page_size=50``，单页最多100条。

    Response body:
        {"results": [...], "count": 42, "page": 2, "total_pages": 3,
         "has_next": true, "has_previous": true, "next": "...", "previous": "..."}
    """
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100

    def get_paginated_response(self, data):
        page = self.page
        return Response({
            'results': data,
            'count': page.paginator.count,
            'page': page.number,
            'total_pages': page.paginator.num_pages,
            'has_next': page.has_next(),
            'has_previous': page.has_previous(),
            'next': self.get_next_link(),
            'previous': self.get_previous_link(),
        })

    def get_paginated_response_schema(self, schema):
        schema = super().get_paginated_response_schema(schema)
        schema['properties'].update({
            'page': {'type': 'integer', 'example': 1},
            'total_pages': {'type': 'integer', 'example': 1},
            'has_next': {'type': 'boolean'},
            'has_previous': {'type': 'boolean'},
        })
        return schema
