from rest_framework import status
from rest_framework.response import Response


def envelope(data=None, message='', success=True):
    """Body shared by every cart response: ``{success, message, data}``."""
    return {'success': success, 'message': message, 'data': data}


def api_response(data=None, message='', status_code=status.HTTP_200_OK):
    return Response(envelope(data, message), status=status_code)
