import uuid

GUEST_COOKIE_NAME = 'guest_id'
GUEST_COOKIE_MAX_AGE = 60 * 60 * 24 * 30

ASSET_EXTENSIONS = ('.svg', '.png', '.jpg', '.jpeg', '.gif', '.webp', '.ico')


class GuestIdMiddleware:
    """
    Give every visitor an anonymous id cookie so visits can be tied
    together before signup. Static files and images are skipped.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)

        path = request.path.lower()
        if path.startswith('/static/') or path.endswith(ASSET_EXTENSIONS):
            return response

        if GUEST_COOKIE_NAME not in request.COOKIES:
            response.set_cookie(
                GUEST_COOKIE_NAME,
                str(uuid.uuid4()),
                max_age=GUEST_COOKIE_MAX_AGE,
                httponly=True,
                samesite='Lax',
                path='/',
            )
        return response
