import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.core.errors import NotFoundError, ValidationError
from app.core.time import kst_today
from app.models import TodayStudy, Vocabulary, VocabularyLike
from app.services import vocabulary


@pytest.fixture
def make_study(db):
    async def _make_study(user_id, day=None):
        study = TodayStudy(user_id=user_id, date=day or kst_today(), content="오늘의 글")
        db.add(study)
        await db.commit()
        await db.refresh(study)
        return study

    return _make_study


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


class TestSaveWord:
    @pytest.mark.asyncio
    async def test_defaults_to_today(self, db, make_user, make_study):
        user = await make_user()
        study = await make_study(user.id)

        vocab_id = await vocabulary.save_word(db, user.id, "습관", "자주 반복하는 행동")

        saved = (await db.execute(select(Vocabulary).where(Vocabulary.id == vocab_id))).scalar_one()
        assert saved.study_id == study.study_id

    @pytest.mark.asyncio
    async def test_old_study_redirected_to_today(self, db, make_user, make_study):
        """Should store against today's study even when an older one is named."""
        user = await make_user()
        older = await make_study(user.id, kst_today() - timedelta(days=1))
        today = await make_study(user.id)

        vocab_id = await vocabulary.save_word(db, user.id, "습관", "뜻", study_id=older.study_id)

        saved = (await db.execute(select(Vocabulary.study_id).where(Vocabulary.id == vocab_id))).scalar_one()
        assert saved == today.study_id

    @pytest.mark.asyncio
    async def test_repeat_updates_meaning(self, db, make_user, make_study):
        """Should keep one row per word and keep the earlier example when none is given."""
        user = await make_user()
        await make_study(user.id)

        first = await vocabulary.save_word(db, user.id, "습관", "옛 뜻", example="예문")
        second = await vocabulary.save_word(db, user.id, "습관", "새 뜻")

        assert first == second
        assert await _count(db, Vocabulary) == 1
        row = (await db.execute(select(Vocabulary.meaning, Vocabulary.example))).one()
        assert row.meaning == "새 뜻"
        assert row.example == "예문"

    @pytest.mark.asyncio
    async def test_no_study_today(self, db, make_user):
        user = await make_user()
        with pytest.raises(ValidationError):
            await vocabulary.save_word(db, user.id, "습관", "뜻")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("word,meaning", [("", "뜻"), ("습관", " "), ("가" * 101, "뜻")])
    async def test_invalid_input(self, db, make_user, make_study, word, meaning):
        user = await make_user()
        await make_study(user.id)
        with pytest.raises(ValidationError):
            await vocabulary.save_word(db, user.id, word, meaning)

    @pytest.mark.asyncio
    async def test_other_users_study(self, db, make_user, make_study):
        owner = await make_user()
        intruder = await make_user()
        study = await make_study(owner.id)

        with pytest.raises(NotFoundError):
            await vocabulary.words_for_study(db, intruder.id, study.study_id)


class TestVocabularyApi:
    @pytest.mark.asyncio
    async def test_save_and_list_by_study(self, client, make_user, make_study, auth_headers):
        user = await make_user()
        study = await make_study(user.id)
        headers = auth_headers(user.id)

        saved = await client.post(
            "/api/gpt/vocabulary",
            json={"study_id": study.study_id, "word": "습관", "meaning": "반복하는 행동", "example": "좋은 습관"},
            headers=headers,
        )
        assert saved.status_code == 200
        assert saved.json()["success"] is True

        listed = (await client.get(f"/api/gpt/vocabulary/{study.study_id}", headers=headers)).json()
        assert listed["result"] == [
            {"id": saved.json()["vocabId"], "word": "습관", "meaning": "반복하는 행동", "example": "좋은 습관"}
        ]

    @pytest.mark.asyncio
    async def test_save_without_study(self, client, make_user, auth_headers):
        user = await make_user()
        response = await client.post(
            "/api/gpt/vocabulary", json={"word": "습관", "meaning": "뜻"}, headers=auth_headers(user.id)
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_requires_login(self, client):
        assert (await client.get("/api/auth/me/vocabulary")).status_code == 401
        assert (await client.post("/api/gpt/vocabulary", json={"word": "a", "meaning": "b"})).status_code == 401

    @pytest.mark.asyncio
    async def test_paging(self, client, db, make_user, make_study, auth_headers):
        """Should page newest first by id and stop with no cursor."""
        user = await make_user()
        await make_study(user.id)
        ids = [await vocabulary.save_word(db, user.id, word, "뜻") for word in ("하나", "둘", "셋")]
        headers = auth_headers(user.id)

        first = (await client.get("/api/auth/me/vocabulary?limit=2", headers=headers)).json()
        assert [w["id"] for w in first["result"]] == [ids[2], ids[1]]
        assert first["nextLastId"] == ids[1]

        rest = (await client.get(f"/api/auth/me/vocabulary?limit=2&lastId={ids[1]}", headers=headers)).json()
        assert [w["id"] for w in rest["result"]] == [ids[0]]
        assert rest["nextLastId"] is None

    @pytest.mark.asyncio
    async def test_recent_is_clamped(self, client, db, make_user, make_study, auth_headers):
        user = await make_user()
        await make_study(user.id)
        for n in range(25):
            await vocabulary.save_word(db, user.id, f"단어{n}", "뜻")

        recent = (await client.get("/api/auth/me/vocabulary/recent?limit=100", headers=auth_headers(user.id))).json()
        assert len(recent["result"]) == vocabulary.RECENT_MAX_LIMIT

        default = (await client.get("/api/auth/me/vocabulary/recent", headers=auth_headers(user.id))).json()
        assert len(default["result"]) == vocabulary.RECENT_DEFAULT_LIMIT

    @pytest.mark.asyncio
    async def test_only_own_words(self, client, db, make_user, make_study, auth_headers):
        me = await make_user()
        other = await make_user()
        await make_study(me.id)
        await make_study(other.id)
        await vocabulary.save_word(db, me.id, "내 단어", "뜻")
        await vocabulary.save_word(db, other.id, "남의 단어", "뜻")

        words = (await client.get("/api/auth/me/vocabulary", headers=auth_headers(me.id))).json()["result"]
        assert [w["word"] for w in words] == ["내 단어"]


class TestVocabularyLike:
    @pytest.mark.asyncio
    async def test_toggle_is_idempotent(self, client, db, make_user, make_study, auth_headers):
        """Should keep one star per word no matter how often it is set."""
        user = await make_user()
        await make_study(user.id)
        vocab_id = await vocabulary.save_word(db, user.id, "습관", "뜻")
        other_id = await vocabulary.save_word(db, user.id, "태도", "뜻")
        headers = auth_headers(user.id)
        url = f"/api/auth/me/vocabulary/{vocab_id}/like"

        for _ in range(2):
            response = await client.patch(url, json={"liked": True}, headers=headers)
            assert response.json() == {"success": True, "vocabId": vocab_id, "isLiked": True}
        assert await _count(db, VocabularyLike) == 1

        liked = (await client.get("/api/auth/me/vocabulary/liked", headers=headers)).json()["result"]
        assert [w["id"] for w in liked] == [vocab_id]

        everything = (await client.get("/api/auth/me/vocabulary", headers=headers)).json()["result"]
        assert {w["id"]: w["isLiked"] for w in everything} == {vocab_id: True, other_id: False}

        for _ in range(2):
            assert (await client.patch(url, json={"liked": False}, headers=headers)).status_code == 200
        assert await _count(db, VocabularyLike) == 0

    @pytest.mark.asyncio
    async def test_someone_elses_word(self, client, db, make_user, make_study, auth_headers):
        owner = await make_user()
        intruder = await make_user()
        await make_study(owner.id)
        vocab_id = await vocabulary.save_word(db, owner.id, "습관", "뜻")

        response = await client.patch(
            f"/api/auth/me/vocabulary/{vocab_id}/like", json={"liked": True}, headers=auth_headers(intruder.id)
        )
        assert response.status_code == 404
        assert await _count(db, VocabularyLike) == 0

    @pytest.mark.asyncio
    async def test_missing_word(self, client, make_user, auth_headers):
        user = await make_user()
        response = await client.patch(
            "/api/auth/me/vocabulary/9999/like", json={"liked": True}, headers=auth_headers(user.id)
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("liked", ["yes", 1, None])
    async def test_liked_must_be_boolean(self, client, make_user, auth_headers, liked):
        user = await make_user()
        response = await client.patch(
            "/api/auth/me/vocabulary/1/like", json={"liked": liked}, headers=auth_headers(user.id)
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_concurrent_likes(self, db, session_maker, make_user, make_study):
        user = await make_user()
        await make_study(user.id)
        vocab_id = await vocabulary.save_word(db, user.id, "습관", "뜻")

        async def like_once():
            async with session_maker() as session:
                await vocabulary.set_liked(session, user.id, vocab_id, True)

        await asyncio.gather(*(like_once() for _ in range(5)))
        assert await _count(db, VocabularyLike) == 1
