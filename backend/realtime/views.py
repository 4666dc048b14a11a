from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .events import get_recent_events, rooms_for_user


@api_view(['GET'])
@permission_classes([AllowAny])
def event_list(request):
    """Poll recent change events visible to the caller"""
    try:
        since = int(request.query_params.get('since', 0))
    except (TypeError, ValueError):
        since = 0
    device_id = request.headers.get('X-Device-Id') or request.query_params.get('device_id')
    rooms = rooms_for_user(request.user, device_id)
    events = get_recent_events(rooms, since)
    return Response({
        'rooms': rooms,
        'events': events,
        'last_id': events[-1]['id'] if events else since,
    })
