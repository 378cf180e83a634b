import logging
from typing import List

from sqlalchemy import literal

from extensions import db
from models import Post, Category
from errors import NotFoundError


logger = logging.getLogger(__name__)


class PostStore:
    """The slice of post persistence the ledger and category lookups depend on."""

    @staticmethod
    def find_posts_with_creators() -> List[Post]:
        # Grouped by creator so one creator's posts are credited back to back
        return (
            Post.query
            .filter(Post.user_id.isnot(None))
            .order_by(Post.user_id.asc(), Post.id.asc())
            .all()
        )

    @staticmethod
    def reset_view_count(post: Post):
        post.view_count = 0

    @staticmethod
    def find_post_by_id(post_id: int) -> Post:
        post = db.session.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    @staticmethod
    def _through_category_query(category_id: int):
        wrapped_path = literal(",") + Post.category_hierarchy + literal(",")
        return (
            Post.query
            .filter(Post.category_hierarchy.isnot(None))
            .filter(wrapped_path.like(f"%,{int(category_id)},%"))
        )

    @staticmethod
    def posts_through_category(category_id: int) -> List[Post]:
        return PostStore._through_category_query(category_id).order_by(Post.id.asc()).all()

    @staticmethod
    def find_posts_under_category(category_id: int) -> List[Post]:
        """Posts whose stored path passes through category_id at any level."""
        if db.session.get(Category, category_id) is None:
            raise NotFoundError("Category not found")

        return (
            PostStore._through_category_query(category_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .all()
        )

    @staticmethod
    def assign_category(post: Post, category_id: int) -> Post:
        from categories.hierarchy import CategoryHierarchyHelper

        hierarchy = CategoryHierarchyHelper.build_post_hierarchy(category_id)
        post.category_id = category_id
        post.category_hierarchy = ",".join(str(cid) for cid in hierarchy)
        logger.debug(f"Post {post.id} assigned to category path {post.category_hierarchy}")
        return post

    @staticmethod
    def rebuild_hierarchies(posts: List[Post], arena):
        """Recompute stored paths from the current (uncommitted) shape of the tree."""
        for post in posts:
            chain = arena.ancestor_chain(post.category_id)
            post.category_hierarchy = ",".join(str(node.id) for node in chain) or None
        if posts:
            logger.debug(f"Rebuilt category paths for posts {[p.id for p in posts]}")
