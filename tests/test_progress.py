from datetime import date, timedelta

import pytest
from sqlalchemy import select

from app.core.errors import ForbiddenError, ValidationError
from app.models import TodayStudy
from app.services import daily_study, progress


class TestProgressLevel:
    @pytest.mark.parametrize(
        "steps,expected",
        [
            ((False, False, False), 0),
            ((True, False, False), 1),
            ((True, True, False), 2),
            ((True, True, True), 3),
            ((False, False, True), 3),
            ((False, True, False), 2),
            ((True, False, True), 3),
        ],
    )
    def test_priority(self, steps, expected):
        """Should report the highest completed step, not the count."""
        assert progress.progress_level(*steps) == expected


class TestMarkStep:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("step", [0, 4, -1, True, "1", 1.0, None])
    async def test_invalid_step(self, db, make_user, step):
        user = await make_user()
        with pytest.raises(ValidationError):
            await progress.mark_step(db, user.id, date(2026, 10, 19), step)

    @pytest.mark.asyncio
    async def test_steps_accumulate(self, db, make_user):
        """Should never clear a step set earlier."""
        user = await make_user()
        day = date(2026, 10, 19)

        await progress.mark_step(db, user.id, day, 3)
        await progress.mark_step(db, user.id, day, 1)
        await progress.mark_step(db, user.id, day, 1)

        rows = (await db.execute(select(TodayStudy).where(TodayStudy.user_id == user.id))).scalars().all()
        assert len(rows) == 1
        await db.refresh(rows[0])
        assert (rows[0].progress_step1, rows[0].progress_step2, rows[0].progress_step3) == (True, False, True)
        assert await progress.get_level(db, user.id, day) == 3

    @pytest.mark.asyncio
    async def test_keeps_study_content(self, db, make_user):
        user = await make_user()
        day = date(2026, 10, 19)
        db.add(TodayStudy(user_id=user.id, date=day, content="passage"))
        await db.commit()

        await progress.mark_step(db, user.id, day, 2)

        row = (await db.execute(select(TodayStudy.content).where(TodayStudy.user_id == user.id))).scalar_one()
        assert row == "passage"

    @pytest.mark.asyncio
    async def test_level_without_row(self, db, make_user):
        user = await make_user()
        assert await progress.get_level(db, user.id, date(2026, 10, 19)) == 0


class TestWeekLevels:
    @pytest.mark.asyncio
    async def test_week_map(self, db, make_user):
        """Should cover Monday to Sunday of the requested week."""
        user = await make_user()
        today = date(2026, 10, 22)  # Thursday
        await progress.mark_step(db, user.id, date(2026, 10, 19), 1)
        await progress.mark_step(db, user.id, date(2026, 10, 21), 2)
        await progress.mark_step(db, user.id, date(2026, 10, 26), 3)  # next week

        levels = await progress.get_week_levels(db, user.id, today, today=today)

        assert list(levels) == [(date(2026, 10, 19) + timedelta(days=i)).isoformat() for i in range(7)]
        assert levels["2026-10-19"] == 1
        assert levels["2026-10-21"] == 2
        assert levels["2026-10-25"] == 0

    @pytest.mark.asyncio
    async def test_sunday_belongs_to_previous_monday(self, db, make_user):
        user = await make_user()
        levels = await progress.get_week_levels(db, user.id, date(2026, 10, 25), today=date(2026, 10, 25))
        assert min(levels) == "2026-10-19"

    @pytest.mark.asyncio
    async def test_older_than_a_month(self, db, make_user):
        user = await make_user()
        today = date(2026, 10, 19)
        with pytest.raises(ForbiddenError):
            await progress.get_week_levels(db, user.id, today - timedelta(days=40), today=today)


class TestProgressApi:
    @pytest.mark.asyncio
    async def test_patch_and_read(self, client, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user.id)

        response = await client.patch("/api/study/progress", json={"date": "2026-10-19", "step": 2}, headers=headers)
        assert response.status_code == 200

        response = await client.get("/api/study/progress/2026-10-19", headers=headers)
        assert response.json() == {"success": True, "progress_level": 2}

    @pytest.mark.asyncio
    async def test_patch_invalid_step(self, client, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user.id)
        for step in (0, 4, "2", True):
            response = await client.patch(
                "/api/study/progress", json={"date": "2026-10-19", "step": step}, headers=headers
            )
            assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_week_too_old(self, client, make_user, auth_headers):
        user = await make_user()
        response = await client.get("/api/study/progress/week/2020-01-06", headers=auth_headers(user.id))
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"


class TestHandwriting:
    @pytest.mark.asyncio
    async def test_save_and_read(self, client, make_user, db, auth_headers):
        user = await make_user()
        study = TodayStudy(user_id=user.id, date=date(2026, 10, 19), content="오늘의 글")
        db.add(study)
        await db.commit()
        await db.refresh(study)
        headers = auth_headers(user.id)

        empty = await client.get(f"/api/gpt/study/handwriting/{study.study_id}", headers=headers)
        assert empty.json() == {"success": True, "result": ""}

        saved = await client.post(
            "/api/gpt/study/handwriting",
            json={"study_id": study.study_id, "content": "오늘의 글"},
            headers=headers,
        )
        assert saved.status_code == 200

        read = await client.get(f"/api/gpt/study/handwriting/{study.study_id}", headers=headers)
        assert read.json()["result"] == "오늘의 글"

    @pytest.mark.asyncio
    async def test_keeps_progress(self, db, make_user):
        """Should leave the progress steps as they were."""
        user = await make_user()
        day = date(2026, 10, 19)
        await progress.mark_step(db, user.id, day, 2)
        study_id = (await db.execute(select(TodayStudy.study_id).where(TodayStudy.user_id == user.id))).scalar_one()

        await daily_study.save_handwriting(db, user.id, study_id, "필사")

        assert await progress.get_level(db, user.id, day) == 2

    @pytest.mark.asyncio
    async def test_other_users_study(self, client, make_user, db, auth_headers):
        """Should treat another user's study as missing."""
        owner = await make_user()
        intruder = await make_user()
        study = TodayStudy(user_id=owner.id, date=date(2026, 10, 19))
        db.add(study)
        await db.commit()
        await db.refresh(study)
        headers = auth_headers(intruder.id)

        write = await client.post(
            "/api/gpt/study/handwriting",
            json={"study_id": study.study_id, "content": "x"},
            headers=headers,
        )
        assert write.status_code == 404
        read = await client.get(f"/api/gpt/study/handwriting/{study.study_id}", headers=headers)
        assert read.status_code == 404

    @pytest.mark.asyncio
    async def test_blank_content(self, db, make_user):
        user = await make_user()
        with pytest.raises(ValidationError):
            await daily_study.save_handwriting(db, user.id, 1, "  ")
