"""
Integration tests for courses, learning paths, lessons and user stats
"""

from fastapi import status

from conftest import auth_headers, finish_blocks


class TestCourses:
    def test_list_courses(self, client, course_data):
        response = client.get("/api/v1/courses")

        assert response.status_code == status.HTTP_200_OK
        courses = response.json()
        assert len(courses) == 1
        assert courses[0]["title"] == "Prompt Engineering Basics"
        assert courses[0]["badges"] == ["New"]

    def test_course_detail_includes_chapters(self, client, course_data):
        response = client.get(f"/api/v1/courses/{course_data['course'].id}")

        assert response.status_code == status.HTTP_200_OK
        assert [c["title"] for c in response.json()["chapters"]] == ["Getting Started"]

    def test_missing_course(self, client):
        response = client.get("/api/v1/courses/999")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        body = response.json()
        assert body["success"] is False
        assert body["status_code"] == 404
        assert body["error"] == "Course not found"


class TestLearningPath:
    def path(self, client, course_data, headers=None):
        return client.get(f"/api/v1/chapters/{course_data['chapter'].id}/path", headers=headers or {})

    def test_anonymous_path(self, client, course_data):
        response = self.path(client, course_data)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert [l["status"] for l in body["lessons"]] == ["current", "locked", "locked"]
        assert body["current_lesson_id"] == course_data["lessons"][0].id
        assert body["completed_count"] == 0
        assert body["total_count"] == 3
        assert [l["position"]["x"] for l in body["lessons"]] == [0, 100, 0]
        assert body["lessons"][2]["position"]["y"] == 280

    def test_path_follows_progress(self, client, headers, course_data, test_db, user):
        finish_blocks(test_db, user, course_data["blocks"].values())
        client.post("/api/v1/progress", json={"lessonId": course_data["lessons"][0].id}, headers=headers)

        body = self.path(client, course_data, headers).json()

        assert [l["status"] for l in body["lessons"]] == ["completed", "current", "locked"]
        assert body["current_lesson_id"] == course_data["lessons"][1].id
        assert body["completed_count"] == 1
        assert body["lessons"][0]["progress_percentage"] == 100

    def test_missing_chapter(self, client):
        assert client.get("/api/v1/chapters/999/path").status_code == status.HTTP_404_NOT_FOUND


class TestLessonDetail:
    def lesson(self, client, course_data, index=0, headers=None):
        return client.get(f"/api/v1/lessons/{course_data['lessons'][index].id}", headers=headers or {})

    def test_first_lesson_blocks_and_player(self, client, headers, course_data):
        response = self.lesson(client, course_data, headers=headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "current"
        assert [b["block_type"] for b in body["blocks"]] == ["theory", "practice", "chatbot", "chatbot"]
        assert body["blocks"][-1]["is_last"] is True

        quiz = body["blocks"][1]
        assert "correct" not in quiz["content"]
        assert quiz["can_advance"] is False

        # Theory can be passed, the unanswered quiz cannot
        assert body["player"]["position"] == 1
        assert body["player"]["current_block_id"] == course_data["blocks"]["practice"].id
        assert body["player"]["can_complete"] is False

    def test_answering_moves_the_player(self, client, headers, course_data):
        quiz_id = course_data["blocks"]["practice"].id
        client.post(f"/api/v1/blocks/{quiz_id}/answer", json={"optionIndex": 1}, headers=headers)

        body = self.lesson(client, course_data, headers=headers).json()

        assert body["blocks"][1]["content"]["correct"] == 1
        assert body["player"]["current_block_id"] == course_data["blocks"]["chat"].id

    def test_locked_lesson(self, client, headers, course_data):
        response = self.lesson(client, course_data, index=1, headers=headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_anonymous_can_open_first_lesson_only(self, client, course_data):
        assert self.lesson(client, course_data).status_code == status.HTTP_200_OK
        assert self.lesson(client, course_data, index=1).status_code == status.HTTP_403_FORBIDDEN

    def test_unlocked_after_completing_previous(self, client, headers, course_data, test_db, user):
        finish_blocks(test_db, user, course_data["blocks"].values())
        client.post("/api/v1/progress", json={"lessonId": course_data["lessons"][0].id}, headers=headers)

        response = self.lesson(client, course_data, index=1, headers=headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["player"]["can_complete"] is True

    def test_malformed_block_renders_as_error(self, client, course_data, test_db):
        block = course_data["blocks"]["theory"]
        block.block_type = "hologram"
        test_db.commit()

        body = self.lesson(client, course_data).json()

        assert body["blocks"][0]["content"]["kind"] == "error"
        assert body["blocks"][0]["can_advance"] is True


class TestMyStats:
    def test_new_user_defaults(self, client, headers):
        coins = client.get("/api/v1/me/coins", headers=headers).json()
        assert coins == {"total_coins": 100, "coins_spent": 0, "is_pro": False}

        experience = client.get("/api/v1/me/experience", headers=headers).json()
        assert experience["total_xp"] == 0
        assert experience["level"] == 1
        assert experience["xp_for_next"] == 100
        assert experience["streak_count"] == 0
        assert experience["formatted_xp"] == "0"

    def test_pro_flag(self, client, pro_user):
        assert client.get("/api/v1/me/coins", headers=auth_headers(pro_user)).json()["is_pro"] is True

    def test_experience_after_lesson(self, client, headers, course_data, test_db, user):
        finish_blocks(test_db, user, course_data["blocks"].values())
        client.post("/api/v1/progress", json={"lessonId": course_data["lessons"][0].id}, headers=headers)

        experience = client.get("/api/v1/me/experience", headers=headers).json()

        assert experience["total_xp"] == 15
        assert experience["streak_count"] == 1
        assert experience["progress_percentage"] == 15
        assert client.get("/api/v1/me/coins", headers=headers).json()["total_coins"] == 105

    def test_level_ladder(self, client, headers):
        body = client.get("/api/v1/me/levels", headers=headers).json()

        assert body["current_level"] == 1
        assert len(body["levels"]) == 8
        assert body["levels"][0]["is_current"] is True
        assert body["levels"][1]["total_xp_required"] == 100

    def test_level_ladder_size_is_bounded(self, client, headers):
        response = client.get("/api/v1/me/levels?show_levels=0", headers=headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_stats_require_authentication(self, client):
        assert client.get("/api/v1/me/coins").status_code == status.HTTP_401_UNAUTHORIZED


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").json()["services"]["learning"]["endpoint"] == "/api/v1/courses"
