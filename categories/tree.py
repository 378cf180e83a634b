from collections import defaultdict, deque
from typing import Dict, List, Optional
import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Category
from errors import NotFoundError, ValidationError, ConflictError, UnauthorizedError
from categories.cache import CategoryTreeCache
from posts.store import PostStore


logger = logging.getLogger(__name__)

MAX_CATEGORY_DEPTH = 4
DELETE_POLICIES = ("orphan", "reject", "cascade")

# Marks an update argument the caller did not send
UNSET = object()


# ==========================================================
#                  IN-MEMORY CATEGORY ARENA
# ==========================================================
class CategoryArena:
    """
    Every category loaded once, indexed by id, with a parent -> children index.
    All walks are iterative and stop on cycles in stored data.
    """

    def __init__(self, categories: List[Category]):
        self.nodes: Dict[int, Category] = {c.id: c for c in categories}
        self.children: Dict[int, List[Category]] = defaultdict(list)
        for category in sorted(categories, key=lambda c: c.id):
            if category.parent_id is not None and category.parent_id in self.nodes:
                self.children[category.parent_id].append(category)

    @classmethod
    def load(cls) -> "CategoryArena":
        return cls(Category.query.order_by(Category.id).all())

    def get(self, category_id) -> Optional[Category]:
        return self.nodes.get(category_id)

    def children_of(self, category_id) -> List[Category]:
        return self.children.get(category_id, [])

    def is_root(self, category: Category) -> bool:
        # Orphans whose parent row is gone are surfaced as roots
        return category.parent_id is None or category.parent_id not in self.nodes

    def ancestor_chain(self, category_id) -> List[Category]:
        """Root -> node, following parent references until a root, a missing parent or a cycle."""
        chain = []
        seen = set()
        node = self.nodes.get(category_id)
        while node is not None and node.id not in seen:
            seen.add(node.id)
            chain.append(node)
            node = self.nodes.get(node.parent_id) if node.parent_id is not None else None
        chain.reverse()
        return chain

    def level_of(self, category_id) -> int:
        return len(self.ancestor_chain(category_id))

    def is_descendant(self, candidate_id, ancestor_id) -> bool:
        """True when ancestor_id appears above candidate_id in its parent chain."""
        seen = set()
        node = self.nodes.get(candidate_id)
        while node is not None and node.parent_id is not None and node.id not in seen:
            seen.add(node.id)
            if node.parent_id == ancestor_id:
                return True
            node = self.nodes.get(node.parent_id)
        return False

    def max_child_depth(self, category_id) -> int:
        """Longest descendant chain counting the node itself (1 for a leaf)."""
        deepest = 0
        seen = set()
        stack = [(category_id, 1)]
        while stack:
            node_id, depth = stack.pop()
            if node_id in seen:
                continue
            seen.add(node_id)
            deepest = max(deepest, depth)
            for child in self.children_of(node_id):
                stack.append((child.id, depth + 1))
        return deepest

    def detach(self, category_id) -> Optional[Category]:
        """Drop a node from the index so its children surface as roots."""
        node = self.nodes.pop(category_id, None)
        if node is not None and node.parent_id in self.children:
            self.children[node.parent_id] = [c for c in self.children[node.parent_id] if c.id != category_id]
        return node

    def renumber_below(self, category_id):
        for parent, child in self.walk_descendants(category_id):
            child.level = parent.level + 1

    def walk_descendants(self, category_id):
        """Breadth-first (parent, child) pairs below category_id."""
        seen = {category_id}
        queue = deque([category_id])
        while queue:
            parent = self.nodes[queue.popleft()]
            for child in self.children_of(parent.id):
                if child.id in seen:
                    continue
                seen.add(child.id)
                yield parent, child
                queue.append(child.id)

    def materialize(self, root_ids: List[int]) -> List[dict]:
        """Serialize the subtrees under root_ids with nested `children` lists."""
        serialized = {}
        result = []
        seen = set()
        queue = deque()
        for root_id in root_ids:
            if root_id in seen:
                continue
            seen.add(root_id)
            serialized[root_id] = self.nodes[root_id].to_dict(children=[])
            result.append(serialized[root_id])
            queue.append(root_id)

        while queue:
            node_id = queue.popleft()
            for child in self.children_of(node_id):
                if child.id in seen:
                    continue
                seen.add(child.id)
                serialized[child.id] = child.to_dict(children=[])
                serialized[node_id]["children"].append(serialized[child.id])
                queue.append(child.id)
        return result

    def forest(self) -> List[dict]:
        roots = [c.id for c in sorted(self.nodes.values(), key=lambda c: c.id) if self.is_root(c)]
        return self.materialize(roots)


# ==========================================================
#                  CATEGORY TREE MANAGER
# ==========================================================
class CategoryTreeManager:

    @staticmethod
    def _name_taken(name: str, exclude_id: int = None) -> bool:
        query = Category.query.filter(Category.name == name)
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def _delete_policy() -> str:
        policy = current_app.config.get("CATEGORY_DELETE_POLICY", "orphan")
        if policy not in DELETE_POLICIES:
            raise ValueError(f"Unknown CATEGORY_DELETE_POLICY '{policy}'")
        return policy

    @staticmethod
    def _commit(action: str):
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Category {action} failed: {e}")
            raise
        CategoryTreeCache.invalidate()

    # ----------------------------------------------------------
    # Create
    # ----------------------------------------------------------
    @staticmethod
    def create_category(name: str, parent_id: int = None, description: str = None) -> Category:
        level = 1

        if parent_id is not None:
            arena = CategoryArena.load()
            if arena.get(parent_id) is None:
                raise NotFoundError("Parent category not found")
            level = arena.level_of(parent_id) + 1
            if level > MAX_CATEGORY_DEPTH:
                raise ValidationError(f"Category hierarchy cannot exceed {MAX_CATEGORY_DEPTH} levels")

        # Leaf names may repeat across branches
        if level < MAX_CATEGORY_DEPTH and CategoryTreeManager._name_taken(name):
            raise ConflictError("Category already exists")

        category = Category(
            name=name,
            level=level,
            description=description,
            parent_id=parent_id,
        )
        db.session.add(category)
        CategoryTreeManager._commit("create")

        logger.info(f"Created category {category.id} '{name}' at level {level} (parent={parent_id})")
        return category

    # ----------------------------------------------------------
    # Update / re-parent
    # ----------------------------------------------------------
    @staticmethod
    def update_category(category_id: int, name=UNSET, parent_id=UNSET, description=UNSET) -> Category:
        arena = CategoryArena.load()
        category = arena.get(category_id)
        if category is None:
            raise NotFoundError("Category not found")

        moving = parent_id is not UNSET
        new_parent = arena.get(parent_id) if moving and parent_id is not None else None

        if not moving:
            new_level = category.level
        elif parent_id is None:
            new_level = 1
        elif new_parent is not None:
            new_level = arena.level_of(parent_id) + 1
        else:
            new_level = category.level

        if name is not UNSET and name != category.name:
            if new_level < MAX_CATEGORY_DEPTH and CategoryTreeManager._name_taken(name, exclude_id=category.id):
                raise ConflictError("Category already exists")

        if moving and parent_id is not None:
            if parent_id == category.id:
                raise ConflictError("A category cannot be its own parent")

            if arena.children_of(category.id) and arena.is_descendant(parent_id, category.id):
                raise ConflictError("Cannot set a child category as parent")

            if new_parent is None:
                raise NotFoundError("Parent category not found")

            if new_level > MAX_CATEGORY_DEPTH:
                raise ValidationError(f"Category hierarchy cannot exceed {MAX_CATEGORY_DEPTH} levels")

        if moving and arena.children_of(category.id):
            child_depth = arena.max_child_depth(category.id)
            if new_level + child_depth - 1 > MAX_CATEGORY_DEPTH:
                raise ConflictError(
                    f"This change would cause some children to exceed the maximum depth of {MAX_CATEGORY_DEPTH} levels"
                )

        affected_posts = PostStore.posts_through_category(category.id) if moving else []

        if name is not UNSET:
            category.name = name
        if description is not UNSET:
            category.description = description
        if moving:
            category.parent_id = parent_id
        category.level = new_level

        arena.renumber_below(category.id)
        if moving:
            PostStore.rebuild_hierarchies(affected_posts, arena)

        CategoryTreeManager._commit("update")
        logger.info(f"Updated category {category.id}: level={new_level}, parent={category.parent_id}")
        return category

    # ----------------------------------------------------------
    # Delete
    # ----------------------------------------------------------
    @staticmethod
    def delete_category(category_id: int, requester_is_privileged: bool) -> List[int]:
        """Remove a category according to CATEGORY_DELETE_POLICY and return the removed ids."""
        if not requester_is_privileged:
            raise UnauthorizedError("Access denied")

        category = db.session.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found")

        policy = CategoryTreeManager._delete_policy()
        removed = [category]

        if policy == "reject":
            if Category.query.filter_by(parent_id=category_id).first() is not None:
                raise ConflictError("Cannot delete a category that has subcategories")
        elif policy == "cascade":
            arena = CategoryArena.load()
            removed = [arena.get(category_id)] + [child for _, child in arena.walk_descendants(category_id)]
        else:
            CategoryTreeManager._orphan_children(category_id)

        removed_ids = [c.id for c in removed]
        for node in removed:
            db.session.delete(node)
        CategoryTreeManager._commit("delete")

        logger.info(f"Deleted categories {removed_ids} (policy={policy})")
        return removed_ids

    @staticmethod
    def _orphan_children(category_id: int):
        """
        Children keep their dangling parent_id and become roots: each orphaned
        subtree is renumbered from level 1 and post paths below it are rebuilt.
        """
        arena = CategoryArena.load()
        orphans = list(arena.children_of(category_id))
        affected_posts = [
            post for post in PostStore.posts_through_category(category_id)
            if post.category_id != category_id
        ]

        arena.detach(category_id)
        for orphan in orphans:
            orphan.level = 1
            arena.renumber_below(orphan.id)
        PostStore.rebuild_hierarchies(affected_posts, arena)

        if orphans:
            logger.info(f"Category {category_id} orphaned {[o.id for o in orphans]} as new roots")

    # ----------------------------------------------------------
    # Reads
    # ----------------------------------------------------------
    @staticmethod
    def get_all_categories() -> List[dict]:
        cached = CategoryTreeCache.get_forest()
        if cached is not None:
            return cached

        forest = CategoryArena.load().forest()
        CategoryTreeCache.set_forest(forest)
        return forest

    @staticmethod
    def get_category_by_id(category_id: int) -> dict:
        arena = CategoryArena.load()
        if arena.get(category_id) is None:
            raise NotFoundError("Category not found")
        return arena.materialize([category_id])[0]
