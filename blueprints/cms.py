#======================================================================================
#
# CMS (admin) endpoints: category mutations and manual ledger job runs
#
#======================================================================================
import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from categories.tree import CategoryTreeManager, UNSET
from wallet.earnings import DailyEarningProcessor, EarningsQueryHelper
from wallet.withdrawals import WithdrawalProcessor
from utils import admin_required, parse_int


logger = logging.getLogger(__name__)

bp = Blueprint('cms', __name__, url_prefix="/cms")


# =========================
# VALIDATE CATEGORY INPUT
# =========================
def _clean_name(value):
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


def validate_category_input(data, partial=False):
    """
    Returns (fields, None) or (None, error_response).
    With partial=True only the keys present in the body are returned.
    """
    fields = {}

    if "name" in data or not partial:
        name = _clean_name(data.get("name"))
        if name is None:
            return None, (jsonify({"error": "Category name is required"}), 400)
        fields["name"] = name

    if "parentId" in data:
        raw_parent = data.get("parentId")
        if raw_parent is None:
            fields["parent_id"] = None
        else:
            parent_id = parse_int(raw_parent)
            if parent_id is None:
                return None, (jsonify({"error": "parentId must be an integer"}), 400)
            fields["parent_id"] = parent_id

    if "description" in data:
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            return None, (jsonify({"error": "description must be a string"}), 400)
        fields["description"] = description

    return fields, None


# ----------------------------------------------------------------------------------
# Categories
# ----------------------------------------------------------------------------------
@bp.route("/category", methods=["POST"])
@admin_required
def create_category():
    data = request.get_json(silent=True) or {}
    fields, error = validate_category_input(data)
    if error:
        return error

    category = CategoryTreeManager.create_category(
        fields["name"],
        parent_id=fields.get("parent_id"),
        description=fields.get("description"),
    )
    return jsonify(category.to_dict()), 201


@bp.route("/category/<int:category_id>", methods=["PATCH"])
@admin_required
def update_category(category_id):
    data = request.get_json(silent=True) or {}
    fields, error = validate_category_input(data, partial=True)
    if error:
        return error

    category = CategoryTreeManager.update_category(
        category_id,
        name=fields.get("name", UNSET),
        parent_id=fields.get("parent_id", UNSET),
        description=fields.get("description", UNSET),
    )
    return jsonify(category.to_dict()), 200


@bp.route("/category/<int:category_id>", methods=["DELETE"])
@login_required
def delete_category(category_id):
    removed = CategoryTreeManager.delete_category(
        category_id,
        requester_is_privileged=current_user.is_admin,
    )
    logger.info(f"Admin {current_user.id} removed categories {removed}")
    return jsonify({"message": "Category deleted", "deletedIds": removed}), 200


# ----------------------------------------------------------------------------------
# Ledger jobs
# ----------------------------------------------------------------------------------
@bp.route("/earnings/calculate", methods=["POST"])
@admin_required
def calculate_earnings():
    processor = DailyEarningProcessor()
    results = processor.run()
    return jsonify({
        "date": processor.today.isoformat(),
        "results": results,
        "errors": processor.errors,
    }), 200


@bp.route("/earnings/preview", methods=["GET"])
@admin_required
def preview_earnings():
    return jsonify(EarningsQueryHelper.preview_post_earnings()), 200


@bp.route("/withdrawals/reconcile", methods=["POST"])
@admin_required
def reconcile_withdrawals():
    return jsonify(WithdrawalProcessor.update_withdrawal_statuses()), 200
