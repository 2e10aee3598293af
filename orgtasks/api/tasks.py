from flask import request, jsonify
from firebase_admin import firestore

from . import tasks_bp, json_body
from orgtasks.middleware.auth_middleware import AuthMiddleware
from orgtasks.services.task_service import TaskService

LIST_FILTERS = ("status", "category", "priority", "assigned_to", "search", "date_range", "is_expired")


def _current():
    return AuthMiddleware.get_current_user(), request.organization_id


# -------- Queries --------
# /stats and /recent are registered before /<task_id>

@tasks_bp.get("/stats")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
def task_stats():
    user, organization_id = _current()
    db = firestore.client()
    return jsonify({"stats": TaskService(db).get_stats(organization_id, user)}), 200


@tasks_bp.get("/recent")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
def recent_tasks():
    user, organization_id = _current()
    db = firestore.client()
    tasks = TaskService(db).get_recent_tasks(organization_id, user, request.args.get("limit", 5))
    return jsonify({"tasks": tasks}), 200


@tasks_bp.get("")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
def list_tasks():
    user, organization_id = _current()
    filters = {key: request.args.get(key) for key in LIST_FILTERS if request.args.get(key) not in (None, "")}
    db = firestore.client()
    result = TaskService(db).list_tasks(
        organization_id, user, filters,
        page=request.args.get("page", 1),
        limit=request.args.get("limit", 10),
    )
    return jsonify(result), 200


@tasks_bp.get("/<task_id>")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
def get_task(task_id):
    user, organization_id = _current()
    db = firestore.client()
    return jsonify({"task": TaskService(db).get_task(task_id, organization_id, user)}), 200


# -------- Mutations --------

@tasks_bp.post("")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
def create_task():
    user, organization_id = _current()
    payload = json_body()
    db = firestore.client()
    task = TaskService(db).create_task(payload, organization_id, user)
    return jsonify({"message": "Task created successfully", "task": task}), 201


@tasks_bp.route("/<task_id>", methods=["PUT", "PATCH"])
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
def update_task(task_id):
    user, organization_id = _current()
    payload = json_body()
    db = firestore.client()
    task = TaskService(db).update_task_details(task_id, organization_id, user, payload)
    return jsonify({"message": "Task updated successfully", "task": task}), 200


@tasks_bp.patch("/<task_id>/status")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
def update_task_status(task_id):
    user, organization_id = _current()
    payload = json_body()
    db = firestore.client()
    task = TaskService(db).update_task_status(
        task_id, organization_id, user, payload.get("status"), payload.get("comment")
    )
    return jsonify({"message": "Task status updated successfully", "task": task}), 200


@tasks_bp.delete("/<task_id>")
@AuthMiddleware.verify_token
@AuthMiddleware.require_organization
def delete_task(task_id):
    user, organization_id = _current()
    db = firestore.client()
    TaskService(db).delete_task(task_id, organization_id, user)
    return jsonify({"message": "Task deleted successfully"}), 200
