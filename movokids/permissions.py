"""
Who may see what: profile lookup, admin roles and the view decorators
that guard back-office pages.
"""
from functools import wraps

from django.contrib.auth.views import redirect_to_login
from django.shortcuts import redirect

from .models import ChildProfile


def profile_for(user):
    """Return the user's ChildProfile, creating an empty one for accounts made outside signup."""
    try:
        return user.profile
    except ChildProfile.DoesNotExist:
        profile, _ = ChildProfile.objects.get_or_create(
            user=user,
            defaults={'child_first_name': user.first_name or user.username},
        )
        user.profile = profile
        return profile


def is_admin(user):
    if not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return profile_for(user).is_admin


def is_super_admin(user):
    if not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return profile_for(user).is_super_admin


def admin_required(view_func):
    """
    Back-office guard.
    Anonymous visitors go to login, regular families go back to their dashboard.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return redirect_to_login(request.get_full_path())
        if not is_admin(request.user):
            return redirect('dashboard')
        return view_func(request, *args, **kwargs)
    return wrapper
