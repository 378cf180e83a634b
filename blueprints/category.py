#======================================================================================
#
# Public category tree reads
#
#======================================================================================
from flask import Blueprint, jsonify

from categories.tree import CategoryTreeManager
from categories.hierarchy import CategoryHierarchyHelper
from posts.store import PostStore


bp = Blueprint('category', __name__, url_prefix="/category")


@bp.route("/getAll", methods=["GET"])
def get_all_categories():
    return jsonify(CategoryTreeManager.get_all_categories()), 200


@bp.route("/<int:category_id>", methods=["GET"])
def get_category(category_id):
    return jsonify(CategoryTreeManager.get_category_by_id(category_id)), 200


@bp.route("/<int:category_id>/path", methods=["GET"])
def get_category_path(category_id):
    return jsonify(CategoryHierarchyHelper.get_category_path(category_id)), 200


@bp.route("/<int:category_id>/posts", methods=["GET"])
def get_category_posts(category_id):
    posts = PostStore.find_posts_under_category(category_id)
    return jsonify([post.to_dict() for post in posts]), 200
