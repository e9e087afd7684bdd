"""
Blog API — BlogService Unit Tests
===================================

What:  Lifecycle rules checked against a mocked AsyncSession.
Why:   Pins the SQL shape of the view increment and the ordering
       "load → policy → mutate" without a database.
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from blogapi.exceptions import AlreadyLikedError, ConflictError, ForbiddenError, NotFoundError
from blogapi.models import Blog
from blogapi.schemas.blog import BlogUpdate
from blogapi.security.principal import Principal
from blogapi.services.blog_service import BlogService
from blogapi.services.file_service import FileService


def _blog(author_id, published=False, views=0):
    now = datetime.now(timezone.utc)
    return Blog(
        id=uuid.uuid4(),
        title="Hello World",
        content="0123456789",
        author_id=author_id,
        views=views,
        is_published=published,
        seo_keywords=[],
        created_at=now,
        updated_at=now,
    )


def _rows(rows=()):
    result = MagicMock()
    result.all.return_value = list(rows)
    return result


class TestBlogService:

    @pytest.fixture(autouse=True)
    def _service(self, settings_factory):
        self.settings_factory = settings_factory
        settings = settings_factory()
        self.service = BlogService(settings, FileService(settings))
        self.owner = Principal(user_id=uuid.uuid4(), email="owner@example.com")
        self.stranger = Principal(user_id=uuid.uuid4(), email="stranger@example.com")

    # ── Read-one ──────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_view_increment_is_a_single_sql_expression(self, mock_db_session):
        blog = _blog(self.owner.user_id, published=True, views=1)
        update_result = MagicMock(rowcount=1)
        select_result = MagicMock()
        select_result.scalar_one.return_value = blog
        mock_db_session.execute.side_effect = [update_result, select_result] + [_rows()] * 4

        response = await self.service.get_blog(mock_db_session, blog.id, None)

        assert response.views == 1
        statement = mock_db_session.execute.call_args_list[0].args[0]
        sql = str(statement.compile())
        assert sql.startswith("UPDATE blogs")
        assert "blogs.views +" in sql
        assert "is_published" in sql
        # The counter is never read into Python and written back
        mock_db_session.get.assert_not_called()
        mock_db_session.flush.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_blog_is_not_found(self, mock_db_session):
        mock_db_session.execute.return_value = MagicMock(rowcount=0)
        mock_db_session.get.return_value = None

        with pytest.raises(NotFoundError):
            await self.service.get_blog(mock_db_session, uuid.uuid4(), None)
        assert mock_db_session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_hidden_draft_is_not_found_for_strangers(self, mock_db_session):
        draft = _blog(self.owner.user_id)
        mock_db_session.execute.return_value = MagicMock(rowcount=0)
        mock_db_session.get.return_value = draft

        with pytest.raises(NotFoundError):
            await self.service.get_blog(mock_db_session, draft.id, self.stranger)

    # ── Ownership gates ───────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_update_by_non_owner_never_mutates(self, mock_db_session):
        blog = _blog(self.owner.user_id)
        mock_db_session.get.return_value = blog
        body = BlogUpdate(title="Hijacked", content="something else entirely")

        with pytest.raises(ForbiddenError):
            await self.service.update_blog(mock_db_session, blog.id, self.stranger, body)

        assert blog.title == "Hello World"
        mock_db_session.execute.assert_not_called()
        mock_db_session.flush.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_by_non_owner_never_mutates(self, mock_db_session):
        blog = _blog(self.owner.user_id, published=True)
        mock_db_session.get.return_value = blog

        with pytest.raises(ForbiddenError):
            await self.service.delete_blog(mock_db_session, blog.id, self.stranger)

        mock_db_session.execute.assert_not_called()
        mock_db_session.delete.assert_not_called()

    # ── Publish ───────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_republish_rejected_when_configured(self, mock_db_session):
        settings = self.settings_factory(republish_behavior="reject")
        service = BlogService(settings, FileService(settings))
        blog = _blog(self.owner.user_id, published=True)
        mock_db_session.get.return_value = blog

        with pytest.raises(ConflictError):
            await service.publish_blog(mock_db_session, blog.id, self.owner)

    @pytest.mark.asyncio
    async def test_republish_is_a_no_op_by_default(self, mock_db_session):
        blog = _blog(self.owner.user_id, published=True)
        mock_db_session.get.return_value = blog
        mock_db_session.execute.return_value = _rows()

        response = await self.service.publish_blog(mock_db_session, blog.id, self.owner)

        assert response.is_published is True
        mock_db_session.flush.assert_not_called()

    # ── Likes ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_second_like_raises_without_insert(self, mock_db_session):
        blog = _blog(self.owner.user_id, published=True)
        mock_db_session.get.return_value = blog
        existing = MagicMock()
        existing.scalar_one_or_none.return_value = self.stranger.user_id
        mock_db_session.execute.return_value = existing

        with pytest.raises(AlreadyLikedError):
            await self.service.like_blog(mock_db_session, blog.id, self.stranger)
        assert mock_db_session.execute.await_count == 1


class TestBlogModelInvariants:

    def test_author_cannot_be_reassigned(self):
        blog = _blog(uuid.uuid4())
        with pytest.raises(ValueError, match="cannot be reassigned"):
            blog.author_id = uuid.uuid4()

    def test_published_blog_cannot_be_unpublished(self):
        blog = _blog(uuid.uuid4(), published=True)
        with pytest.raises(ValueError, match="cannot be unpublished"):
            blog.is_published = False

    def test_draft_can_be_published(self):
        blog = _blog(uuid.uuid4())
        blog.is_published = True
        assert blog.is_published is True
