"""Tests for foreign-key detection and dependency extraction."""

from apibridge.foreign_keys import (
    ForeignKeyAnalyzer,
    context_key_for,
    marker_for,
    marker_paths,
    needs_foreign_key_resolution,
)

UUID = {"type": "string", "format": "uuid"}


class TestDetect:

    def setup_method(self):
        self.analyzer = ForeignKeyAnalyzer({"users", "categories", "tags", "books", "boxes"})

    def test_aliases(self):
        for prop in ("authorId", "userId", "ownerId", "creatorId"):
            target = self.analyzer.detect(prop, UUID, "posts")
            assert target is not None and target.target_endpoint == "users", prop
        assert self.analyzer.detect("categoryId", UUID).target_endpoint == "categories"
        assert self.analyzer.detect("tag_id", UUID).target_endpoint == "tags"

    def test_pluralized_stem(self):
        target = self.analyzer.detect("bookId", UUID)
        assert target.target_endpoint == "books"
        assert target.target_resource == "book"
        assert target.source_property == "bookId"
        assert self.analyzer.detect("box_id", UUID).target_endpoint == "boxes"

    def test_id_prefix_pattern(self):
        assert self.analyzer.detect("id_book", UUID).target_endpoint == "books"

    def test_requires_uuid_format(self):
        assert self.analyzer.detect("authorId", {"type": "string"}) is None
        assert self.analyzer.detect("authorId", {"type": "integer"}) is None

    def test_unknown_endpoint(self):
        assert self.analyzer.detect("reviewerId", UUID) is None

    def test_plain_id_not_foreign(self):
        assert self.analyzer.detect("id", UUID) is None

    def test_custom_aliases(self):
        analyzer = ForeignKeyAnalyzer({"people"}, aliases={"assignee": "people"})
        assert analyzer.detect("assigneeId", UUID).target_endpoint == "people"
        # Defaults are replaced, not extended
        assert analyzer.detect("authorId", UUID) is None


class TestMarkers:

    def test_marker_for(self):
        assert marker_for("users") == "DYNAMIC_USERS_ID"
        assert marker_for("book_copies") == "DYNAMIC_BOOK_COPIES_ID"

    def test_context_key(self):
        assert context_key_for("users") == "existing_users"

    def test_marker_paths(self):
        payload = {
            "data": {"authorId": "DYNAMIC_USERS_ID", "tags": ["x", "DYNAMIC_USERS_ID"]},
            "authorId": "DYNAMIC_USERS_ID",
            "note": "by DYNAMIC_USERS_ID",
        }
        assert marker_paths(payload, "DYNAMIC_USERS_ID") == ["data.authorId", "data.tags.1", "authorId"]
        assert marker_paths(payload, "DYNAMIC_TAGS_ID") == []

    def test_needs_resolution(self):
        assert needs_foreign_key_resolution({"a": {"b": ["DYNAMIC_USERS_ID"]}})
        assert not needs_foreign_key_resolution({"a": "plain"})


class TestAnalyzeDependencies:

    def setup_method(self):
        self.analyzer = ForeignKeyAnalyzer(set())

    def test_single(self):
        deps = self.analyzer.analyze_dependencies({"title": "x", "authorId": "DYNAMIC_USERS_ID"})
        assert len(deps) == 1
        assert deps[0].source_property == "authorId"
        assert deps[0].target_endpoint == "users"
        assert deps[0].marker == "DYNAMIC_USERS_ID"
        assert deps[0].context_key == "existing_users"

    def test_underscored_target(self):
        deps = self.analyzer.analyze_dependencies({"copyId": "DYNAMIC_BOOK_COPIES_ID"})
        assert deps[0].target_endpoint == "book_copies"

    def test_nested_property_located(self):
        deps = self.analyzer.analyze_dependencies({"meta": {"ownerId": "DYNAMIC_USERS_ID"}})
        assert deps[0].source_property == "ownerId"
        assert deps[0].path == "meta.ownerId"

    def test_inside_list(self):
        deps = self.analyzer.analyze_dependencies({"tagIds": ["DYNAMIC_TAGS_ID"]})
        assert deps[0].source_property == "tagIds"
        assert deps[0].path == "tagIds.0"

    def test_one_per_occurrence(self):
        payload = {
            "data": {"authorId": "DYNAMIC_USERS_ID"},
            "authorId": "DYNAMIC_USERS_ID",
            "editorId": "DYNAMIC_USERS_ID",
        }
        deps = self.analyzer.analyze_dependencies(payload)
        assert len(deps) == 3
        # Each occurrence is attributed to the first matching property
        assert {d.path for d in deps} == {"data.authorId"}

    def test_no_markers(self):
        assert self.analyzer.analyze_dependencies({"a": 1, "b": [True]}) == []

    def test_to_dict(self):
        dep = self.analyzer.analyze_dependencies({"authorId": "DYNAMIC_USERS_ID"})[0]
        assert dep.to_dict() == {
            "sourceProperty": "authorId",
            "targetEndpoint": "users",
            "marker": "DYNAMIC_USERS_ID",
            "contextKey": "existing_users",
        }
