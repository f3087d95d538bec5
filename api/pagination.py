"""
Custom pagination classes for the Club Manager API.
"""
from rest_framework.pagination import PageNumberPagination


class StandardResultsPagination(PageNumberPagination):
    """
    Standard pagination with configurable page size.
    """
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class LargeResultsPagination(PageNumberPagination):
    """
    Larger pagination for member and attendance listings.
    """
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 200
