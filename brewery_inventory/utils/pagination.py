"""
Pagination helpers
"""

from flask import current_app


def resolve_page_args(page=None, limit=None):
    """Apply configured defaults and the maximum page size"""
    page = page or 1
    limit = limit or current_app.config.get('DEFAULT_PAGE_SIZE', 20)
    max_page_size = current_app.config.get('MAX_PAGE_SIZE', 100)
    return page, min(limit, max_page_size)


def build_pagination(data, total, page, limit):
    """Wrap a page of results with {total, page, limit, total_pages, has_more}"""
    total_pages = (total + limit - 1) // limit if limit else 0
    return {
        'data': data,
        'pagination': {
            'total': total,
            'page': page,
            'limit': limit,
            'total_pages': total_pages,
            'has_more': page < total_pages,
        },
    }


def paginate_query(query, page, limit, serializer=None):
    """Run a SQLAlchemy query page and build the paginated payload"""
    result = query.paginate(page=page, per_page=limit, error_out=False)
    items = result.items
    if serializer is not None:
        items = [serializer(item) for item in items]
    return build_pagination(items, result.total, page, limit)
