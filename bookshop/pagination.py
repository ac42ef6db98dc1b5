from .errors import InvalidInput

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def page_args(args, default_limit=DEFAULT_LIMIT):
    """Read ``page`` and ``limit`` from a request's query string."""
    page = args.get('page', 1, type=int)
    limit = args.get('limit', default_limit, type=int)
    if page < 1:
        page = 1
    if limit < 1:
        raise InvalidInput('limit must be positive')
    return page, min(limit, MAX_LIMIT)


def paginate(query, page, limit):
    total_items = query.count()
    total_pages = (total_items + limit - 1) // limit
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, {
        'currentPage': page,
        'limit': limit,
        'totalItems': total_items,
        'totalPages': total_pages
    }
