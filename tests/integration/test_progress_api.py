"""
Integration tests for lesson progress, rewards and streaks
"""

from datetime import date, timedelta

from fastapi import status

import pytest

from conftest import auth_headers, finish_blocks
from models import UserCoins, UserExperience, UserLessonBlockAttempt, UserProgress
from utils.events import ExperienceChanged, LessonCompleted, event_bus
from utils.progress_service import upsert_lesson_progress


@pytest.fixture
def blocks_done(test_db, user, course_data):
    finish_blocks(test_db, user, course_data["blocks"].values())


class TestProgressAPI:
    def test_requires_authentication(self, client, course_data):
        response = client.post("/api/v1/progress", json={"lessonId": course_data["lessons"][0].id})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["success"] is False

    def test_first_completion_awards_rewards(self, client, headers, course_data, test_db, user, blocks_done):
        lesson = course_data["lessons"][0]

        response = client.post("/api/v1/progress", json={"lessonId": lesson.id}, headers=headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["data"]["completed"] is True
        assert body["data"]["progress_percentage"] == 100
        assert body["data"]["points_earned"] == 10

        rewards = body["rewards"]
        assert rewards["newly_completed"] is True
        assert rewards["xp_awarded"] == 15  # 10 for the lesson + 5 for a 1-day streak
        assert rewards["streak_bonus"] == 5
        assert rewards["coins_awarded"] == 5
        assert rewards["total_xp"] == 15
        assert rewards["level"] == 1
        assert rewards["leveled_up"] is False

        coins = test_db.query(UserCoins).filter(UserCoins.user_id == user.id).one()
        assert coins.total_coins == 105

    def test_repeat_completion_is_idempotent(self, client, headers, course_data, test_db, user, blocks_done):
        lesson = course_data["lessons"][0]
        client.post("/api/v1/progress", json={"lessonId": lesson.id}, headers=headers)

        response = client.post("/api/v1/progress", json={"lessonId": lesson.id}, headers=headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["rewards"]["newly_completed"] is False
        assert response.json()["rewards"]["xp_awarded"] == 0
        assert test_db.query(UserProgress).filter(UserProgress.user_id == user.id).count() == 1
        assert test_db.query(UserExperience).filter(UserExperience.user_id == user.id).one().total_xp == 15

    def test_completion_is_sticky(self, client, headers, course_data, blocks_done):
        lesson = course_data["lessons"][0]
        client.post("/api/v1/progress", json={"lessonId": lesson.id}, headers=headers)

        response = client.post(
            "/api/v1/progress",
            json={"lessonId": lesson.id, "progressPercentage": 40, "completed": False},
            headers=headers,
        )

        assert response.json()["data"]["completed"] is True
        assert response.json()["data"]["progress_percentage"] == 100

    def test_partial_progress_awards_nothing(self, client, headers, course_data):
        lesson = course_data["lessons"][0]

        response = client.post(
            "/api/v1/progress",
            json={"lesson_id": lesson.id, "progress_percentage": 60, "completed": False},
            headers=headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["progress_percentage"] == 60
        assert response.json()["data"]["completed"] is False
        assert response.json()["rewards"]["newly_completed"] is False

    def test_locked_lesson_rejected(self, client, headers, course_data):
        locked = course_data["lessons"][1]

        response = client.post("/api/v1/progress", json={"lessonId": locked.id}, headers=headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert "unlock" in response.json()["error"]

    def test_unknown_lesson(self, client, headers, course_data):
        response = client.post("/api/v1/progress", json={"lessonId": 9999}, headers=headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "Lesson not found"

    def test_invalid_percentage(self, client, headers, course_data):
        response = client.post(
            "/api/v1/progress",
            json={"lessonId": course_data["lessons"][0].id, "progressPercentage": 150},
            headers=headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "Validation Error"

    def test_list_progress(self, client, headers, course_data, blocks_done):
        client.post("/api/v1/progress", json={"lessonId": course_data["lessons"][0].id}, headers=headers)

        response = client.get("/api/v1/progress", headers=headers)

        assert response.status_code == status.HTTP_200_OK
        assert [record["lesson_id"] for record in response.json()] == [course_data["lessons"][0].id]

    def test_progress_is_per_user(self, client, headers, course_data, pro_user, blocks_done):
        client.post("/api/v1/progress", json={"lessonId": course_data["lessons"][0].id}, headers=headers)

        response = client.get("/api/v1/progress", headers=auth_headers(pro_user))
        assert response.json() == []


class TestCompletionGate:
    def complete(self, client, headers, lesson):
        return client.post("/api/v1/progress", json={"lessonId": lesson.id}, headers=headers)

    def test_unfinished_blocks_block_completion(self, client, headers, course_data, test_db, user):
        first, second, _ = course_data["lessons"]

        response = self.complete(client, headers, first)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "Current block is not finished yet"
        assert test_db.query(UserProgress).filter(UserProgress.user_id == user.id).count() == 0
        assert client.get(f"/api/v1/lessons/{second.id}", headers=headers).status_code == status.HTTP_403_FORBIDDEN

    def test_answered_quiz_alone_is_not_enough(self, client, headers, course_data):
        quiz_id = course_data["blocks"]["practice"].id
        client.post(f"/api/v1/blocks/{quiz_id}/answer", json={"optionIndex": 0}, headers=headers)

        response = self.complete(client, headers, course_data["lessons"][0])

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_exhausted_task_still_lets_the_lesson_complete(self, client, headers, course_data, test_db, user):
        blocks = course_data["blocks"]
        finish_blocks(test_db, user, [blocks["theory"], blocks["practice"], blocks["chat"]])
        test_db.add(
            UserLessonBlockAttempt(user_id=user.id, lesson_block_id=blocks["task"].id, attempts_used=2, completed=False)
        )
        test_db.commit()

        response = self.complete(client, headers, course_data["lessons"][0])

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["completed"] is True

    def test_lesson_with_only_theory_completes(self, client, headers, course_data, test_db, user, blocks_done):
        self.complete(client, headers, course_data["lessons"][0])

        response = self.complete(client, headers, course_data["lessons"][1])

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["rewards"]["newly_completed"] is True


class TestStreaks:
    def test_consecutive_days_extend_the_streak(self, test_db, user, course_data):
        first, second, third = course_data["lessons"]
        day = date(2025, 3, 10)

        update = upsert_lesson_progress(test_db, user, first, today=day)
        assert (update.xp_awarded, update.streak_bonus) == (15, 5)

        update = upsert_lesson_progress(test_db, user, second, today=day + timedelta(days=1))
        assert (update.xp_awarded, update.streak_bonus) == (20, 10)

        experience = test_db.query(UserExperience).filter(UserExperience.user_id == user.id).one()
        assert experience.streak_count == 2

        # A missed day restarts the streak without a bonus
        update = upsert_lesson_progress(test_db, user, third, today=day + timedelta(days=3))
        assert (update.xp_awarded, update.streak_bonus) == (10, 0)
        assert update.total_xp == 45

        test_db.refresh(experience)
        assert experience.streak_count == 1
        assert experience.last_activity_date == day + timedelta(days=3)

    def test_same_day_keeps_streak_without_bonus(self, test_db, user, course_data):
        first, second, _ = course_data["lessons"]
        day = date(2025, 3, 10)

        upsert_lesson_progress(test_db, user, first, today=day)
        update = upsert_lesson_progress(test_db, user, second, today=day)

        assert (update.xp_awarded, update.streak_bonus) == (10, 0)


class TestProgressEvents:
    def test_completion_publishes_events(self, test_db, user, course_data):
        received = []
        unsubscribe_lesson = event_bus.subscribe(LessonCompleted, received.append)
        unsubscribe_xp = event_bus.subscribe(ExperienceChanged, received.append)
        try:
            upsert_lesson_progress(test_db, user, course_data["lessons"][0])
            upsert_lesson_progress(test_db, user, course_data["lessons"][0])
        finally:
            unsubscribe_lesson()
            unsubscribe_xp()

        assert [type(e) for e in received] == [LessonCompleted, ExperienceChanged]
        assert received[0].lesson_id == course_data["lessons"][0].id
        assert received[1].total_xp == 15
