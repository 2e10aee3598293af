from flask import jsonify
from firebase_admin import firestore

from . import auth_bp, json_body
from orgtasks.middleware.auth_middleware import AuthMiddleware, build_auth_service


@auth_bp.post("/register")
def register():
    payload = json_body()
    db = firestore.client()
    session = build_auth_service(db).register(payload)
    return jsonify({"message": "User registered successfully", **session}), 201


@auth_bp.post("/login")
def login():
    payload = json_body()
    db = firestore.client()
    session = build_auth_service(db).login(payload.get("email"), payload.get("password"))
    return jsonify({"message": "Login successful", **session}), 200


@auth_bp.get("/profile")
@AuthMiddleware.verify_token
def profile():
    db = firestore.client()
    user = AuthMiddleware.get_current_user()
    return jsonify({"user": build_auth_service(db).profile(user)}), 200
