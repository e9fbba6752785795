"""Tests for rating submission and average aggregation."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from app.models.doctor_ratings import doctor_ratings
from app.models.doctors import doctors
from app.models.profiles import UserRole
from app.services.rating_service import RatingService, average_rating


async def stored_average(db: AsyncSession, doctor_id) -> Decimal:
    result = await db.execute(select(doctors.c.rating).where(doctors.c.id == doctor_id))
    return Decimal(str(result.scalar_one()))


async def rating_count(db: AsyncSession, doctor_id) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(doctor_ratings)
        .where(doctor_ratings.c.doctor_id == doctor_id)
    )
    return result.scalar_one()


# ============================================================================
# average_rating
# ============================================================================


def test_average_rating_empty_is_zero():
    assert average_rating([]) == Decimal("0")


@pytest.mark.parametrize(
    ("scores", "expected"),
    [
        ([5], "5.0"),
        ([5, 4, 3], "4.0"),
        ([4, 5], "4.5"),
        ([4, 4, 5], "4.3"),
        ([4, 5, 5], "4.7"),
        # 85 / 20 = 4.25 rounds up, not to even
        ([5] * 15 + [2] * 5, "4.3"),
    ],
)
def test_average_rating_rounds_half_up_to_one_decimal(scores, expected):
    assert average_rating(scores) == Decimal(expected)


def test_average_rating_accepts_any_iterable():
    assert average_rating(s for s in (1, 2)) == Decimal("1.5")


# ============================================================================
# submit_rating
# ============================================================================


@pytest.mark.asyncio
async def test_new_doctor_has_zero_rating(db_session, doctor_id):
    """A doctor with no ratings shows 0."""
    assert await stored_average(db_session, doctor_id) == 0

    service = RatingService()
    assert await service.recompute_average(db_session, doctor_id) == 0.0


@pytest.mark.asyncio
async def test_rating_scenario_replace_not_append(db_session, doctor_id, make_user):
    """Ratings [5,4,3] average 4.0, a fourth 2 gives 3.5, a re-rate to 1 gives 2.5."""
    service = RatingService()
    first, second, third, fourth = [await make_user() for _ in range(4)]

    for rater, score in ((first, 5), (second, 4), (third, 3)):
        await service.submit_rating(db_session, doctor_id, rater, score)
    assert await stored_average(db_session, doctor_id) == Decimal("4.0")

    await service.submit_rating(db_session, doctor_id, fourth, 2)
    assert await stored_average(db_session, doctor_id) == Decimal("3.5")

    await service.submit_rating(db_session, doctor_id, first, 1)
    assert await stored_average(db_session, doctor_id) == Decimal("2.5")
    assert await rating_count(db_session, doctor_id) == 4


@pytest.mark.asyncio
async def test_repeated_submissions_keep_one_rating(db_session, doctor_id, patient_id):
    """N submissions by one rater leave exactly one row holding the last score and comment."""
    service = RatingService()

    for score, comment in ((2, "Long wait"), (4, "Better this time"), (5, "Excellent")):
        await service.submit_rating(db_session, doctor_id, patient_id, score, comment)

    assert await rating_count(db_session, doctor_id) == 1
    rating = await service.get_user_rating(db_session, doctor_id, patient_id)
    assert rating["rating"] == 5
    assert rating["comment"] == "Excellent"
    assert await stored_average(db_session, doctor_id) == Decimal("5.0")


@pytest.mark.asyncio
async def test_recompute_average_is_idempotent(db_session, doctor_id, make_user):
    service = RatingService()
    for score in (5, 4, 4):
        await service.submit_rating(db_session, doctor_id, await make_user(), score)

    first = await service.recompute_average(db_session, doctor_id)
    second = await service.recompute_average(db_session, doctor_id)

    assert first == second == 4.3
    assert await stored_average(db_session, doctor_id) == Decimal("4.3")


@pytest.mark.asyncio
async def test_recompute_heals_a_stale_average(db_session, doctor_id, patient_id):
    """A rating written without a recompute is picked up by the next recompute."""
    await db_session.execute(
        insert(doctor_ratings).values(doctor_id=doctor_id, user_id=patient_id, rating=3)
    )
    await db_session.commit()
    assert await stored_average(db_session, doctor_id) == 0

    await RatingService().recompute_average(db_session, doctor_id)

    assert await stored_average(db_session, doctor_id) == Decimal("3.0")


@pytest.mark.asyncio
async def test_recompute_invalidates_cached_listings(db_session, doctor_id, patient_id):
    await db_session.execute(
        insert(doctor_ratings).values(doctor_id=doctor_id, user_id=patient_id, rating=4)
    )
    await db_session.commit()
    cache = MagicMock()
    service = RatingService(cache_manager=cache)

    await service.recompute_average(db_session, doctor_id)

    cache.delete_pattern.assert_called_once_with("doctor:list:*")


@pytest.mark.asyncio
async def test_unchanged_average_leaves_listings_cached(db_session, doctor_id, make_user):
    service = RatingService()
    for score in (5, 4):
        await service.submit_rating(db_session, doctor_id, await make_user(), score)

    cache = MagicMock()
    assert await RatingService(cache_manager=cache).recompute_average(db_session, doctor_id) == 4.5

    cache.delete_pattern.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [0, 6, -1, 3.5, True, "4"])
async def test_submit_rejects_invalid_scores(db_session, doctor_id, patient_id, score):
    service = RatingService()

    with pytest.raises(ValidationException):
        await service.submit_rating(db_session, doctor_id, patient_id, score)

    assert await rating_count(db_session, doctor_id) == 0


@pytest.mark.asyncio
async def test_submit_for_unknown_doctor(db_session, patient_id):
    with pytest.raises(NotFoundException):
        await RatingService().submit_rating(db_session, uuid4(), patient_id, 4)


@pytest.mark.asyncio
async def test_concurrent_first_submission_falls_back_to_update(
    db_session, doctor_id, patient_id
):
    """Losing the insert race to the same rater updates the winning row instead."""
    service = RatingService()
    await db_session.execute(
        insert(doctor_ratings).values(doctor_id=doctor_id, user_id=patient_id, rating=5)
    )
    await db_session.commit()

    real_lookup = service.get_user_rating
    calls = 0

    async def lookup_missing_once(db, d_id, u_id):
        # The first lookup runs before the other request's insert is visible
        nonlocal calls
        calls += 1
        if calls == 1:
            return None
        return await real_lookup(db, d_id, u_id)

    with patch.object(service, "get_user_rating", side_effect=lookup_missing_once):
        stored = await service.submit_rating(
            db_session, doctor_id, patient_id, 2, "Changed my mind"
        )

    assert stored["rating"] == 2
    assert stored["comment"] == "Changed my mind"
    assert await rating_count(db_session, doctor_id) == 1
    assert await stored_average(db_session, doctor_id) == Decimal("2.0")


@pytest.mark.asyncio
async def test_recompute_failure_does_not_fail_submission(db_session, doctor_id, patient_id):
    service = RatingService()

    with patch.object(
        service, "recompute_average", AsyncMock(side_effect=SQLAlchemyError("store down"))
    ):
        stored = await service.submit_rating(db_session, doctor_id, patient_id, 4)

    assert stored["rating"] == 4
    assert await rating_count(db_session, doctor_id) == 1

    # The next recompute converges
    await service.recompute_average(db_session, doctor_id)
    assert await stored_average(db_session, doctor_id) == Decimal("4.0")


@pytest.mark.asyncio
async def test_resubmission_keeps_doctor_response(
    db_session, doctor_user_id, patient_id, make_doctor
):
    service = RatingService()
    doctor_id = await make_doctor(created_by_user_id=doctor_user_id)

    rating = await service.submit_rating(db_session, doctor_id, patient_id, 3, "Okay")
    await service.respond_to_rating(
        db_session, rating["id"], "Thanks for the feedback", doctor_user_id
    )
    updated = await service.submit_rating(db_session, doctor_id, patient_id, 4, "Better")

    assert updated["rating"] == 4
    assert updated["doctor_response"] == "Thanks for the feedback"


# ============================================================================
# Doctor responses
# ============================================================================


@pytest.mark.asyncio
async def test_owner_can_respond_to_rating(db_session, doctor_user_id, patient_id, make_doctor):
    service = RatingService()
    doctor_id = await make_doctor(created_by_user_id=doctor_user_id)
    rating = await service.submit_rating(db_session, doctor_id, patient_id, 5, "Great")

    updated = await service.respond_to_rating(
        db_session, rating["id"], "  Thank you!  ", doctor_user_id
    )

    assert updated["doctor_response"] == "Thank you!"
    assert updated["rating"] == 5


@pytest.mark.asyncio
async def test_non_owner_cannot_respond(db_session, doctor_id, patient_id, make_user):
    service = RatingService()
    rating = await service.submit_rating(db_session, doctor_id, patient_id, 2)
    stranger = await make_user(UserRole.DOCTOR)

    with pytest.raises(ForbiddenException):
        await service.respond_to_rating(db_session, rating["id"], "Not my profile", stranger)

    with pytest.raises(ForbiddenException):
        await service.respond_to_rating(db_session, rating["id"], "Anonymous", None)


@pytest.mark.asyncio
async def test_respond_validation(db_session, doctor_user_id, patient_id, make_doctor):
    service = RatingService()
    doctor_id = await make_doctor(created_by_user_id=doctor_user_id)
    rating = await service.submit_rating(db_session, doctor_id, patient_id, 4)

    with pytest.raises(ValidationException):
        await service.respond_to_rating(db_session, rating["id"], "   ", doctor_user_id)

    with pytest.raises(NotFoundException):
        await service.respond_to_rating(db_session, uuid4(), "Hello", doctor_user_id)


@pytest.mark.asyncio
async def test_unanswered_ratings_for_owner(
    db_session, doctor_user_id, patient_id, make_user, make_doctor
):
    service = RatingService()
    doctor_id = await make_doctor(created_by_user_id=doctor_user_id)
    answered = await service.submit_rating(db_session, doctor_id, patient_id, 5)
    other_rater = await make_user()
    pending = await service.submit_rating(db_session, doctor_id, other_rater, 3)
    await service.respond_to_rating(db_session, answered["id"], "Thanks", doctor_user_id)

    unanswered = await service.list_unanswered_ratings(db_session, doctor_id, doctor_user_id)

    assert [r["id"] for r in unanswered] == [pending["id"]]

    with pytest.raises(ForbiddenException):
        await service.list_unanswered_ratings(db_session, doctor_id, patient_id)
