"""Tests for CRUD workflow synthesis."""

from apibridge.endpoints import build_endpoints
from apibridge.schema_resolver import SchemaResolver
from apibridge.workflows import WorkflowSynthesizer


def _synthesize(spec):
    resolver = SchemaResolver(spec)
    endpoints = build_endpoints(spec, resolver)
    return WorkflowSynthesizer(endpoints, resolver).synthesize_all()


class TestUsersPostsScenario:
    """users (full CRUD) + posts (no update, authorId foreign key)."""

    def test_posts_steps(self, scenario_spec):
        workflows = _synthesize(scenario_spec)
        posts = workflows["posts_crud_workflow"]
        assert posts.actions == ["list_users", "create_post", "list_posts", "get_post", "delete_post"]

        fetch, create, listing, get, delete = posts.steps
        assert fetch.args == {"saveToContext": "existing_users"}
        assert create.args["saveToContext"] == "created_post"
        assert create.args["_dynamicForeignKeys"] == [{
            "sourceProperty": "authorId",
            "targetEndpoint": "users",
            "marker": "DYNAMIC_USERS_ID",
            "contextKey": "existing_users",
            "paths": ["data.authorId", "authorId"],
        }]
        assert listing.args is None
        assert get.args == {"fromContext": "created_post"}
        assert delete.args == {"fromContext": "created_post"}

    def test_create_args_flattened_and_raw(self, scenario_spec):
        create = _synthesize(scenario_spec)["posts_crud_workflow"].steps[1]
        assert create.args["data"] == {"title": "Sample Workflow Title", "authorId": "DYNAMIC_USERS_ID"}
        assert create.args["title"] == "Sample Workflow Title"
        assert create.args["authorId"] == "DYNAMIC_USERS_ID"

    def test_users_has_update(self, scenario_spec):
        users = _synthesize(scenario_spec)["users_crud_workflow"]
        assert users.actions == ["create_user", "list_users", "get_user", "update_user", "delete_user"]
        update = users.steps[3]
        assert update.args["fromContext"] == "created_user"
        assert update.args["name"] == "Sample name"
        assert "_dynamicForeignKeys" not in users.steps[0].args

    def test_workflow_metadata(self, scenario_spec):
        posts = _synthesize(scenario_spec)["posts_crud_workflow"]
        assert posts.name == "posts_crud_workflow"
        assert posts.description == "Full CRUD workflow for the posts endpoint."


class TestEligibility:

    def test_missing_get_means_no_workflow(self, scenario_spec):
        del scenario_spec["paths"]["/posts/{id}"]["get"]
        assert "posts_crud_workflow" not in _synthesize(scenario_spec)

    def test_missing_list_means_no_workflow(self, scenario_spec):
        del scenario_spec["paths"]["/users"]["get"]
        assert "users_crud_workflow" not in _synthesize(scenario_spec)

    def test_blog_fixture(self, blog_spec):
        workflows = _synthesize(blog_spec)
        # categories lacks get/delete; tags lacks list; health is read-only
        assert set(workflows) == {"users_crud_workflow", "posts_crud_workflow", "comments_crud_workflow"}


class TestDependencySteps:

    def test_distinct_targets_in_first_seen_order(self, blog_spec):
        comments = _synthesize(blog_spec)["comments_crud_workflow"]
        # postId is required (sampled first), authorId optional
        assert comments.actions[:3] == ["list_posts", "list_users", "create_comment"]

    def test_dedup_by_marker(self, blog_spec):
        create = _synthesize(blog_spec)["comments_crud_workflow"].steps[2]
        markers = [d["marker"] for d in create.args["_dynamicForeignKeys"]]
        assert markers == ["DYNAMIC_POSTS_ID", "DYNAMIC_USERS_ID"]
        paths = [d["paths"] for d in create.args["_dynamicForeignKeys"]]
        assert paths == [["data.postId", "postId"], ["data.authorId", "authorId"]]

    def test_unknown_target_gets_literal_uuid(self, blog_spec):
        posts = _synthesize(blog_spec)["posts_crud_workflow"]
        assert posts.actions[:3] == ["list_users", "list_categories", "create_post"]
        create = posts.steps[2]
        assert create.args["reviewerId"] == "123e4567-e89b-12d3-a456-426614174000"

    def test_patch_update_step(self, blog_spec):
        comments = _synthesize(blog_spec)["comments_crud_workflow"]
        assert "update_comment" in comments.actions
        update = comments.steps[comments.actions.index("update_comment")]
        assert update.args == {
            "fromContext": "created_comment",
            "data": {"body": "test_body"},
            "body": "test_body",
        }

    def test_update_carries_its_own_foreign_keys(self, scenario_spec):
        scenario_spec["paths"]["/posts/{id}"]["put"] = {
            "requestBody": {"content": {"application/json": {"schema": {"$ref": "#/components/schemas/Post"}}}},
        }
        posts = _synthesize(scenario_spec)["posts_crud_workflow"]
        # users already fetched for create; no second fetch step
        assert posts.actions == [
            "list_users", "create_post", "list_posts", "get_post", "update_post", "delete_post",
        ]
        update = posts.steps[4]
        assert update.args["authorId"] == "DYNAMIC_USERS_ID"
        assert update.args["_dynamicForeignKeys"] == [{
            "sourceProperty": "authorId",
            "targetEndpoint": "users",
            "marker": "DYNAMIC_USERS_ID",
            "contextKey": "existing_users",
            "paths": ["data.authorId", "authorId"],
        }]

    def test_update_only_target_fetched(self, scenario_spec):
        scenario_spec["paths"]["/categories"] = {"get": {}, "post": {}}
        scenario_spec["paths"]["/posts/{id}"]["patch"] = {
            "requestBody": {"content": {"application/json": {"schema": {
                "type": "object",
                "properties": {"categoryId": {"type": "string", "format": "uuid"}},
            }}}},
        }
        posts = _synthesize(scenario_spec)["posts_crud_workflow"]
        assert posts.actions[:3] == ["list_users", "list_categories", "create_post"]
        assert "_dynamicForeignKeys" in posts.steps[2].args
        assert [d["marker"] for d in posts.steps[2].args["_dynamicForeignKeys"]] == ["DYNAMIC_USERS_ID"]
        update = posts.steps[posts.actions.index("update_post")]
        assert update.args["_dynamicForeignKeys"] == [{
            "sourceProperty": "categoryId",
            "targetEndpoint": "categories",
            "marker": "DYNAMIC_CATEGORIES_ID",
            "contextKey": "existing_categories",
            "paths": ["data.categoryId", "categoryId"],
        }]

    def test_update_skipped_without_fields(self):
        spec = {"paths": {
            "/notes": {"get": {}, "post": {}},
            "/notes/{id}": {"get": {}, "put": {}, "delete": {}},
        }}
        notes = _synthesize(spec)["notes_crud_workflow"]
        assert notes.actions == ["create_note", "list_notes", "get_note", "delete_note"]
        assert notes.steps[0].args == {"saveToContext": "created_note"}


class TestSerialization:

    def test_to_dict(self, scenario_spec):
        data = _synthesize(scenario_spec)["posts_crud_workflow"].to_dict()
        assert data["name"] == "posts_crud_workflow"
        assert data["steps"][2] == {"action": "list_posts", "description": "List all posts to verify creation"}
