"""
Postboard Backend - Schema and Tag Normalization Tests
=====================================================

What:  Tests for tag normalization and the pydantic request/response models.
How:   Pure unit tests, no database.
"""

from datetime import datetime
from types import SimpleNamespace

import pytest
from pydantic import ValidationError as PydanticValidationError

from postboard.exceptions import collect_field_errors, summarize_field_errors
from postboard.schemas.post import ListPostsParams, PostCreate, PostListItem, PostResponse, PostUpdate, to_snake
from postboard.schemas.user import LoginRequest, UserCreate
from postboard.services.tags import normalize_tag, normalize_tags


class TestNormalizeTags:

    def test_trims_and_lowercases(self):
        assert normalize_tag("  Laravel ") == "laravel"

    def test_deduplicates_keeping_first_position(self):
        assert normalize_tags([" PHP ", "php", "Laravel", "PHP"]) == ["php", "laravel"]

    def test_unicode_lowercase(self):
        assert normalize_tags(["ÉCOLE", "école"]) == ["école"]

    def test_empty(self):
        assert normalize_tags([]) == []

    def test_idempotent(self):
        once = normalize_tags(["B", "a", " b"])
        assert normalize_tags(once) == once


class TestListPostsParams:

    def test_defaults(self):
        params = ListPostsParams()
        assert (params.page, params.per_page) == (1, 10)
        assert (params.sort, params.direction) == ("created_at", "desc")
        assert params.tags is None

    def test_camel_case_aliases_and_values(self):
        params = ListPostsParams.model_validate(
            {"perPage": "5", "sortBy": "createdAt", "sortDirection": "ASC"}
        )
        assert params.per_page == 5
        assert params.sort == "created_at"
        assert params.direction == "asc"

    def test_tags_are_normalized(self):
        params = ListPostsParams.model_validate({"tags": ["PHP", " php ", "", "Go"]})
        assert params.tags == ["php", "go"]

    def test_blank_tags_become_no_filter(self):
        assert ListPostsParams.model_validate({"tags": ["", "  "]}).tags is None

    def test_blank_search_is_ignored(self):
        assert ListPostsParams.model_validate({"search": "   "}).search is None

    @pytest.mark.parametrize(
        "raw",
        [
            {"page": 0},
            {"per_page": 0},
            {"per_page": 101},
            {"sort": "content"},
            {"direction": "sideways"},
            {"tags": ["x" * 51]},
        ],
    )
    def test_rejects_invalid_values(self, raw):
        with pytest.raises(PydanticValidationError):
            ListPostsParams.model_validate(raw)

    def test_to_filters(self):
        filters = ListPostsParams.model_validate({"author": "Ada", "page": 2}).to_filters()
        assert filters.author == "Ada"
        assert filters.page == 2
        assert filters.search is None


class TestPostPayloads:

    def test_create_requires_at_least_one_tag(self):
        with pytest.raises(PydanticValidationError) as exc_info:
            PostCreate.model_validate({"title": "t", "content": "c", "author": "a", "tags": []})
        assert collect_field_errors(exc_info.value.errors())["tags"]

    def test_tag_length_is_measured_after_lowercasing(self):
        # "İ" lower-cases to two code points
        with pytest.raises(PydanticValidationError):
            PostCreate.model_validate({"title": "t", "content": "c", "author": "a", "tags": ["İ" * 26]})
        with pytest.raises(PydanticValidationError):
            ListPostsParams.model_validate({"tags": ["İ" * 26]})

        accepted = PostCreate.model_validate({"title": "t", "content": "c", "author": "a", "tags": ["İ" * 25]})
        assert accepted.tags == ["İ" * 25]

    def test_create_rejects_blank_tag(self):
        with pytest.raises(PydanticValidationError) as exc_info:
            PostCreate.model_validate({"title": "t", "content": "c", "author": "a", "tags": [" "]})
        errors = collect_field_errors(exc_info.value.errors())
        assert errors == {"tags": ["tags must not contain blank values"]}

    def test_create_missing_fields(self):
        with pytest.raises(PydanticValidationError) as exc_info:
            PostCreate.model_validate({})
        assert set(collect_field_errors(exc_info.value.errors())) == {"title", "content", "author", "tags"}

    def test_update_tracks_only_sent_fields(self):
        data = PostUpdate.model_validate({"title": "New"})
        assert data.model_dump(exclude_unset=True) == {"title": "New"}

    def test_update_cannot_null_required_columns(self):
        with pytest.raises(PydanticValidationError):
            PostUpdate.model_validate({"title": None})

    def test_update_may_clear_subtitle(self):
        data = PostUpdate.model_validate({"subtitle": None})
        assert data.model_dump(exclude_unset=True) == {"subtitle": None}

    def test_update_remove_image_flag(self):
        assert PostUpdate.model_validate({"remove_image": "true"}).remove_image is True


class TestPostProjections:

    def _post(self):
        stamp = datetime(2024, 1, 1, 12, 0)
        return SimpleNamespace(
            id=1,
            title="Title",
            subtitle=None,
            content="Body",
            image="posts/a.png",
            author="Ada",
            tags=[SimpleNamespace(name="php"), SimpleNamespace(name="go")],
            created_at=stamp,
            updated_at=stamp,
        )

    def test_detail_uses_tag_names_and_camel_case_timestamps(self):
        body = PostResponse.model_validate(self._post()).model_dump(by_alias=True)
        assert body["tags"] == ["php", "go"]
        assert "createdAt" in body and "updatedAt" in body

    def test_list_item_omits_content(self):
        body = PostListItem.model_validate(self._post()).model_dump(by_alias=True)
        assert set(body) == {"id", "title", "image", "author", "tags", "updatedAt"}


class TestUserSchemas:

    VALID = {
        "name": " Grace Hopper ",
        "age": 85,
        "birth_date": "1906-12-09",
        "phone": "555-0100",
        "email": "Grace@Example.COM",
        "password": "long-enough",
    }

    def test_user_create_normalizes(self):
        data = UserCreate.model_validate(self.VALID)
        assert data.email == "grace@example.com"
        assert data.name == "Grace Hopper"

    @pytest.mark.parametrize(
        "field, value",
        [("email", "not-an-email"), ("password", "short"), ("age", 0), ("birth_date", "yesterday")],
    )
    def test_user_create_rejects(self, field, value):
        with pytest.raises(PydanticValidationError) as exc_info:
            UserCreate.model_validate({**self.VALID, field: value})
        assert field in collect_field_errors(exc_info.value.errors())

    def test_login_lowercases_email(self):
        assert LoginRequest(email="ADA@example.com", password="x").email == "ada@example.com"


class TestFieldErrorFormatting:

    def test_location_prefix_is_dropped(self):
        errors = collect_field_errors(
            [
                {"loc": ("body", "tags", 0), "msg": "Value error, bad tag"},
                {"loc": ("query", "page"), "msg": "too small"},
            ]
        )
        assert errors == {"tags.0": ["bad tag"], "page": ["too small"]}

    def test_summary(self):
        assert summarize_field_errors({}) == "The given data was invalid."
        assert summarize_field_errors({"a": ["one"]}) == "one"
        assert summarize_field_errors({"a": ["one", "two"], "b": ["three"]}) == "one (and 2 more errors)"

    def test_to_snake(self):
        assert to_snake("sortDirection") == "sort_direction"
        assert to_snake("title") == "title"
