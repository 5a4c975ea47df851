from django.db import connection
from django.db.utils import DatabaseError
from django.http import JsonResponse


def health_check(request):
    """Liveness check: reports whether the database answers."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
        database = 'ok'
    except DatabaseError:
        database = 'unavailable'

    status = 200 if database == 'ok' else 503
    return JsonResponse({'status': 'ok' if status == 200 else 'degraded', 'database': database}, status=status)


# Same {'error': ...} body the API views return
def error_404(request, exception):
    return JsonResponse({'error': f'No route for {request.path}'}, status=404)


def error_500(request):
    return JsonResponse({'error': 'Internal server error'}, status=500)
