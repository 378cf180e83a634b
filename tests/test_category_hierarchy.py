"""
Category paths, post assignment and the redis forest cache
"""
import json

import pytest

from extensions import db
from errors import NotFoundError, ValidationError
from categories.cache import CategoryTreeCache, FOREST_CACHE_KEY
from categories.hierarchy import CategoryHierarchyHelper
from categories.tree import CategoryTreeManager
from posts.store import PostStore


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, key):
        self.store.pop(key, None)


def test_category_path_is_root_first(app, chain):
    path = CategoryHierarchyHelper.get_category_path(chain["D"].id)
    assert [node["name"] for node in path] == ["A", "B", "C", "D"]
    assert [node["level"] for node in path] == [1, 2, 3, 4]


def test_category_path_missing(app):
    with pytest.raises(NotFoundError):
        CategoryHierarchyHelper.get_category_path(404)


def test_post_hierarchy_requires_leaf(app, chain):
    assert CategoryHierarchyHelper.build_post_hierarchy(chain["D"].id) == [
        chain["A"].id, chain["B"].id, chain["C"].id, chain["D"].id,
    ]
    with pytest.raises(ValidationError, match="level 4"):
        CategoryHierarchyHelper.build_post_hierarchy(chain["C"].id)


def test_assign_category_and_find_posts_under_any_ancestor(app, chain, creator, make_post):
    post = make_post(creator, title="Paris guide")
    PostStore.assign_category(post, chain["D"].id)
    db.session.commit()

    assert post.category_hierarchy == ",".join(str(chain[name].id) for name in "ABCD")

    for name in "ABCD":
        found = PostStore.find_posts_under_category(chain[name].id)
        assert [p.id for p in found] == [post.id]

    other = CategoryTreeManager.create_category("Unrelated")
    assert PostStore.find_posts_under_category(other.id) == []


def test_reparent_rebuilds_post_paths(app, chain, creator, make_post):
    post = make_post(creator, title="Paris guide")
    PostStore.assign_category(post, chain["D"].id)
    db.session.commit()
    elsewhere = CategoryTreeManager.create_category("Elsewhere")

    CategoryTreeManager.update_category(chain["C"].id, parent_id=elsewhere.id)

    db.session.expire_all()
    expected = [elsewhere.id, chain["C"].id, chain["D"].id]
    assert PostStore.find_post_by_id(post.id).hierarchy_ids() == expected
    assert PostStore.find_posts_under_category(chain["A"].id) == []
    assert PostStore.find_posts_under_category(chain["B"].id) == []
    assert [p.id for p in PostStore.find_posts_under_category(elsewhere.id)] == [post.id]


def test_orphaning_drops_removed_ancestors_from_post_paths(app, chain, creator, make_post):
    post = make_post(creator)
    PostStore.assign_category(post, chain["D"].id)
    db.session.commit()

    CategoryTreeManager.delete_category(chain["B"].id, requester_is_privileged=True)

    db.session.expire_all()
    assert PostStore.find_post_by_id(post.id).category_hierarchy == f"{chain['C'].id},{chain['D'].id}"
    assert PostStore.find_posts_under_category(chain["A"].id) == []
    assert [p.id for p in PostStore.find_posts_under_category(chain["C"].id)] == [post.id]


def test_find_posts_under_missing_category(app):
    with pytest.raises(NotFoundError):
        PostStore.find_posts_under_category(9)


def test_find_post_by_id(app, creator, make_post):
    post = make_post(creator)
    assert PostStore.find_post_by_id(post.id).id == post.id
    with pytest.raises(NotFoundError, match="Post not found"):
        PostStore.find_post_by_id(post.id + 1)


def test_forest_cache_is_filled_and_invalidated(app, chain):
    fake = FakeRedis()
    app.config["CATEGORY_CACHE_ENABLED"] = True
    app.config["CATEGORY_CACHE_TTL"] = 60
    app.extensions["category_cache"] = fake

    forest = CategoryTreeManager.get_all_categories()
    assert json.loads(fake.store[FOREST_CACHE_KEY]) == forest
    assert fake.ttls[FOREST_CACHE_KEY] == 60

    CategoryTreeManager.create_category("New root")
    assert FOREST_CACHE_KEY not in fake.store

    names = [node["name"] for node in CategoryTreeManager.get_all_categories()]
    assert names == ["A", "New root"]


def test_forest_cache_served_when_present(app):
    fake = FakeRedis()
    fake.store[FOREST_CACHE_KEY] = json.dumps([{"id": 1, "name": "cached", "children": []}])
    app.config["CATEGORY_CACHE_ENABLED"] = True
    app.extensions["category_cache"] = fake

    assert CategoryTreeManager.get_all_categories()[0]["name"] == "cached"


def test_cache_disabled_is_a_no_op(app):
    assert CategoryTreeCache.get_forest() is None
    CategoryTreeCache.set_forest([])
    CategoryTreeCache.invalidate()
    assert "category_cache" not in app.extensions
