"""
Custom permission classes for claims app.
"""
from rest_framework.permissions import BasePermission


class IsVendorUser(BasePermission):
    """
    Permission for point-of-sale actions (scan, confirm payment).

    Vendor scope of the individual claim is checked by the services;
    this only keeps customers out.

    Usage:
        permission_classes = [IsAuthenticated, IsVendorUser]
    """

    message = 'Only vendors can perform this action.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_vendor)


class IsClaimOwner(BasePermission):
    """
    Permission to view a claim and its credential.

    Allows only the customer who made the claim.
    """

    message = 'You do not have permission to view this claim.'

    def has_object_permission(self, request, view, obj):
        return obj.customer_id == request.user.id
