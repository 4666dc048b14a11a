"""
Page/limit pagination used by list endpoints
"""
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def get_page_params(request, default_limit=DEFAULT_PAGE_SIZE):
    """Read ``page`` and ``limit`` query params, clamped to sane values"""
    try:
        page = int(request.query_params.get('page', 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(request.query_params.get('limit', default_limit))
    except (TypeError, ValueError):
        limit = default_limit
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    return page, limit


def paginate_queryset(request, queryset, serializer_class, context=None, default_limit=DEFAULT_PAGE_SIZE):
    """
    Slice a queryset, or an already built list, for the requested page and serialize it.

    Returns a dict with results, count, next, previous, page and page_size.
    """
    page, limit = get_page_params(request, default_limit)
    count = len(queryset) if isinstance(queryset, list) else queryset.count()
    offset = (page - 1) * limit
    page_results = queryset[offset:offset + limit]

    serializer_context = {'request': request}
    if context:
        serializer_context.update(context)
    serializer = serializer_class(page_results, many=True, context=serializer_context)

    return {
        'results': serializer.data,
        'count': count,
        'next': page + 1 if offset + limit < count else None,
        'previous': page - 1 if page > 1 else None,
        'page': page,
        'page_size': limit,
    }
