from typing import List

from errors import NotFoundError, ValidationError
from categories.tree import CategoryArena, MAX_CATEGORY_DEPTH


class CategoryHierarchyHelper:
    """Root-to-node path lookups used by posts."""

    @staticmethod
    def get_category_path(category_id: int) -> List[dict]:
        arena = CategoryArena.load()
        if arena.get(category_id) is None:
            raise NotFoundError("Category not found")

        return [
            {"id": node.id, "name": node.name, "level": position}
            for position, node in enumerate(arena.ancestor_chain(category_id), start=1)
        ]

    @staticmethod
    def build_post_hierarchy(category_id: int) -> List[int]:
        """Ordered ids root -> leaf; only level-4 categories accept posts."""
        arena = CategoryArena.load()
        if arena.get(category_id) is None:
            raise NotFoundError("Category not found")

        chain = arena.ancestor_chain(category_id)
        if len(chain) != MAX_CATEGORY_DEPTH:
            raise ValidationError("Posts must be assigned to a category at level 4 (leaf category)")
        return [node.id for node in chain]
