from .permissions import can_create_league, is_super_admin


def menu_context(request):
    """
    Inject a gated menu to templates. base.html iterates this.
    """
    user = request.user
    authed = user.is_authenticated
    items = [
        {"label": "Home", "url": "/", "visible": True},
        {"label": "Teams", "url": "/teams/", "visible": authed},
        {"label": "Matches", "url": "/matches/", "visible": authed},
        {"label": "Leagues", "url": "/leagues/", "visible": authed},
        {"label": "Standings", "url": "/standings/", "visible": authed},
        {"label": "Create League", "url": "/create-league/", "visible": can_create_league(user)},
        {"label": "Admin", "url": "/admin/", "visible": is_super_admin(user)},
        {"label": "Profile", "url": "/accounts/profile/", "visible": authed},
        {"label": "Login", "url": "/accounts/login/", "visible": not authed},
    ]
    return {"nav_items": [i for i in items if i["visible"]]}
