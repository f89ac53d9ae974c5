#! /usr/bin/env python

"""Authentication and authorization utilities

Admin rights come from an IP allowlist. The caller's IP is read from a
single header set by the reverse proxy (Cloudflare's CF-Connecting-IP by
default); the socket address is never consulted.
"""

import logging
from functools import wraps
from flask import request, current_app

from errors import AuthError

logger = logging.getLogger('photog')


def parseAdminIpList(value):
    """Split a comma separated allowlist into a set of trimmed IPs.

    Returns None when the allowlist is not configured at all.
    """
    if value is None:
        return None
    return frozenset(ip.strip() for ip in value.split(',') if ip.strip())


def isAdmin(ip, adminIpList):
    """True only when ip is set and appears in the allowlist.

    adminIpList may be the raw comma separated string or an already
    parsed set. Missing IP or missing allowlist is never admin.
    """
    if ip is None or ip == '':
        return False
    if isinstance(adminIpList, str) or adminIpList is None:
        adminIpList = parseAdminIpList(adminIpList)
    if adminIpList is None:
        return False
    return ip in adminIpList


def getClientIp(req=None):
    """IP from the trusted proxy header, or None if the header is missing"""
    req = req if req is not None else request
    header = current_app.config.get('TRUSTED_IP_HEADER', 'CF-Connecting-IP')
    ip = req.headers.get(header)
    if ip is None or ip.strip() == '':
        return None
    return ip.strip()


def isAdminRequest(req=None):
    """Check the current request's caller against the configured allowlist"""
    return isAdmin(getClientIp(req), current_app.config.get('ADMIN_IP_LIST'))


def admin_required(action):
    """Decorator to require an allowlisted caller.

    Runs before the view reads the request body or touches storage.

    Args:
        action: what the caller was trying to do, for the 403 message
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not isAdminRequest():
                logger.warning('ADMIN_DENIED ip=%s path=%s', getClientIp(), request.path)
                raise AuthError(f'Forbidden: You are not authorized to {action}.')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
