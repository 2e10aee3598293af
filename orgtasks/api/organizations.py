from flask import request, jsonify
from firebase_admin import firestore

from . import organizations_bp, json_body
from orgtasks.errors import NotificationFailed
from orgtasks.middleware.auth_middleware import AuthMiddleware, RoleMiddleware, build_invitation_service
from orgtasks.services.organization_service import OrganizationService


def _current():
    return AuthMiddleware.get_current_user(), request.organization_id


# -------- Organization --------

@organizations_bp.get("")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
def get_organization():
    _, organization_id = _current()
    db = firestore.client()
    return jsonify({"organization": OrganizationService(db).get(organization_id)}), 200


@organizations_bp.patch("")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
@RoleMiddleware.require_admin()
def update_organization():
    user, organization_id = _current()
    payload = json_body()
    db = firestore.client()
    organization = OrganizationService(db).update(organization_id, user, payload)
    return jsonify({"message": "Organization updated successfully", "organization": organization}), 200


@organizations_bp.post("/deactivate")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
@RoleMiddleware.require_admin()
def deactivate_organization():
    user, organization_id = _current()
    db = firestore.client()
    organization = OrganizationService(db).deactivate(organization_id, user)
    return jsonify({"message": "Organization deactivated", "organization": organization}), 200


# -------- Members --------

@organizations_bp.get("/members")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
def list_members():
    _, organization_id = _current()
    db = firestore.client()
    return jsonify({"members": OrganizationService(db).list_members(organization_id)}), 200


@organizations_bp.post("/members/invite")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
@RoleMiddleware.require_manager_or_above()
def invite_member():
    user, organization_id = _current()
    payload = json_body()
    db = firestore.client()
    result = build_invitation_service(db).invite(
        payload.get("email"), payload.get("role") or "member", organization_id, user
    )
    if not result["email_sent"]:
        raise NotificationFailed(
            "Invitation created but the email could not be sent",
            {"invitation_id": result["invitation"]["invitation_id"], "invite_link": result["invite_link"]},
        )
    return jsonify({"message": "Invitation sent successfully", **result}), 201


@organizations_bp.patch("/members/<user_id>/role")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
@RoleMiddleware.require_admin()
def change_member_role(user_id):
    user, organization_id = _current()
    payload = json_body()
    db = firestore.client()
    member = OrganizationService(db).change_member_role(organization_id, user, user_id, payload.get("role"))
    return jsonify({"message": "User role updated successfully", "user": member}), 200


@organizations_bp.delete("/members/<user_id>")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
@RoleMiddleware.require_admin()
def remove_member(user_id):
    user, organization_id = _current()
    db = firestore.client()
    OrganizationService(db).remove_member(organization_id, user, user_id)
    return jsonify({"message": "Member removed successfully"}), 200


# -------- Invitations --------

@organizations_bp.get("/invites")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
@RoleMiddleware.require_manager_or_above()
def list_invites():
    user, organization_id = _current()
    db = firestore.client()
    return jsonify({"invites": build_invitation_service(db).list_pending(organization_id, user)}), 200


@organizations_bp.delete("/invites/<invitation_id>")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
@RoleMiddleware.require_manager_or_above()
def cancel_invite(invitation_id):
    user, organization_id = _current()
    db = firestore.client()
    build_invitation_service(db).cancel(invitation_id, organization_id, user)
    return jsonify({"message": "Invitation cancelled successfully"}), 200


@organizations_bp.get("/invites/verify/<token>")
def verify_invite(token):
    db = firestore.client()
    return jsonify({"invitation": build_invitation_service(db).verify(token)}), 200


@organizations_bp.post("/invites/accept/<token>")
@AuthMiddleware.verify_token
def accept_invite(token):
    user = AuthMiddleware.get_current_user()
    db = firestore.client()
    result = build_invitation_service(db).accept(token, user)
    return jsonify({"message": "Successfully joined organization", **result}), 200
