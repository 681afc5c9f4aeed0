from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from src.app.deps import CurrentUser, get_current_user, get_recipe_repository, get_supabase
from src.app.domain.errors import RepositoryError
from src.app.domain.models import Recipe, SavedRecipe
from src.app.main import app

RECIPE_ID = "0b4e7d2c-1111-4222-8333-444455556666"


def _recipe(recipe_id: str = RECIPE_ID) -> Recipe:
    return Recipe(
        id=recipe_id,
        title="Bolo de cenoura",
        ingredients=["3 cenouras", "2 xicaras de farinha"],
        instructions=["Bata", "Asse"],
        scraped_content_id=7,
        confidence=0.8,
        ai_provider="gemini",
        created_at=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
    )


class RecipeRepositoryStub:
    def __init__(self) -> None:
        self.recipes: dict[str, Recipe] = {RECIPE_ID: _recipe()}
        self.saved: list[tuple[str, str]] = []
        self.custom: dict[tuple[str, str], dict] = {}
        self.error: Optional[Exception] = None

    def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        if self.error is not None:
            raise self.error
        return self.recipes.get(recipe_id)

    def list_recipes(self, limit: int = 100, offset: int = 0) -> list[Recipe]:
        if self.error is not None:
            raise self.error
        return list(self.recipes.values())[offset:offset + limit]

    def list_user_recipes(self, user_id: str) -> list[SavedRecipe]:
        return [
            SavedRecipe(user_recipe_id=f"ur-{i}", recipe=self.recipes[rid], **self.custom.get((uid, rid), {}))
            for i, (uid, rid) in enumerate(self.saved)
            if uid == user_id
        ]

    def save_to_user(self, user_id: str, recipe_id: str) -> None:
        if (user_id, recipe_id) not in self.saved:
            self.saved.append((user_id, recipe_id))

    def update_user_recipe(self, user_id, recipe_id, custom_title=None, custom_ingredients=None, custom_instructions=None) -> bool:
        if self.error is not None:
            raise self.error
        if (user_id, recipe_id) not in self.saved:
            return False
        fields = {
            "custom_title": custom_title,
            "custom_ingredients": custom_ingredients,
            "custom_instructions": custom_instructions,
        }
        self.custom.setdefault((user_id, recipe_id), {}).update({k: v for k, v in fields.items() if v is not None})
        return True

    def remove_from_user(self, user_id: str, recipe_id: str) -> None:
        if self.error is not None:
            raise self.error
        if (user_id, recipe_id) in self.saved:
            self.saved.remove((user_id, recipe_id))


@pytest.fixture
def repo():
    stub = RecipeRepositoryStub()
    app.dependency_overrides[get_recipe_repository] = lambda: stub
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(id="user-1", email="ana@example.com")
    yield stub
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


class TestAuth:
    def test_requires_bearer_token(self, client) -> None:
        app.dependency_overrides[get_supabase] = lambda: MagicMock()
        try:
            response = client.get("/api/recipes")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 401

    def test_invalid_token(self, client) -> None:
        supa = MagicMock()
        supa.auth.get_user.side_effect = RuntimeError("jwt expired")
        app.dependency_overrides[get_supabase] = lambda: supa
        try:
            response = client.get("/api/recipes", headers={"Authorization": "Bearer nope"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 401


class TestRecipes:
    def test_list(self, repo, client) -> None:
        response = client.get("/api/recipes")

        assert response.status_code == 200
        recipes = response.json()["recipes"]
        assert recipes[0]["id"] == RECIPE_ID
        assert recipes[0]["scrapedContentId"] == 7
        assert recipes[0]["aiProvider"] == "gemini"
        assert recipes[0]["createdAt"].startswith("2024-03-01T12:00:00")

    def test_detail(self, repo, client) -> None:
        response = client.get(f"/api/recipes/{RECIPE_ID}")

        assert response.status_code == 200
        assert response.json()["recipe"]["title"] == "Bolo de cenoura"

    @pytest.mark.parametrize("recipe_id", ["not-a-uuid", "5f0c3e8a-0000-4000-8000-000000000000"])
    def test_detail_not_found(self, repo, client, recipe_id: str) -> None:
        response = client.get(f"/api/recipes/{recipe_id}")
        assert response.status_code == 404

    def test_repository_error_is_500(self, repo, client) -> None:
        repo.error = RepositoryError("list_recipes", "db down")

        response = client.get("/api/recipes")

        assert response.status_code == 500


class TestCollection:
    def test_save_is_idempotent_and_listed(self, repo, client) -> None:
        first = client.post("/api/recipes/save", json={"recipeId": RECIPE_ID})
        second = client.post("/api/recipes/save", json={"recipeId": RECIPE_ID})

        assert first.status_code == 201
        assert first.json() == {"success": True, "recipeId": RECIPE_ID}
        assert second.status_code == 201
        assert repo.saved == [("user-1", RECIPE_ID)]

        collection = client.get("/api/recipes/my-collection").json()["recipes"]
        assert len(collection) == 1
        assert collection[0]["recipe"]["id"] == RECIPE_ID
        assert collection[0]["hasCustomizations"] is False

    def test_save_unknown_recipe(self, repo, client) -> None:
        response = client.post("/api/recipes/save", json={"recipeId": "5f0c3e8a-0000-4000-8000-000000000000"})
        assert response.status_code == 404

    def test_save_requires_uuid(self, repo, client) -> None:
        response = client.post("/api/recipes/save", json={"recipeId": "abc"})
        assert response.status_code == 422

    def test_remove_from_collection(self, repo, client) -> None:
        repo.saved.append(("user-1", RECIPE_ID))

        response = client.delete(f"/api/recipes/save/{RECIPE_ID}")

        assert response.status_code == 200
        assert response.json() == {"message": "Recipe removed from collection"}
        assert repo.saved == []
        assert RECIPE_ID in repo.recipes
        assert client.get("/api/recipes/my-collection").json()["recipes"] == []

    def test_remove_error_is_500(self, repo, client) -> None:
        repo.error = RepositoryError("remove_from_user", "db down")

        response = client.delete(f"/api/recipes/save/{RECIPE_ID}")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to remove recipe"


class TestEdit:
    def test_edit_saved_recipe(self, repo, client) -> None:
        repo.saved.append(("user-1", RECIPE_ID))

        response = client.put(
            f"/api/recipes/{RECIPE_ID}/edit",
            json={"customTitle": "Meu bolo", "customIngredients": ["4 cenouras", "farinha"]},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Recipe updated successfully"}
        saved = client.get("/api/recipes/my-collection").json()["recipes"][0]
        assert saved["customTitle"] == "Meu bolo"
        assert saved["customIngredients"] == ["4 cenouras", "farinha"]
        assert saved["customInstructions"] is None
        assert saved["hasCustomizations"] is True
        assert saved["recipe"]["title"] == "Bolo de cenoura"

    def test_edit_keeps_fields_not_sent(self, repo, client) -> None:
        repo.saved.append(("user-1", RECIPE_ID))
        client.put(f"/api/recipes/{RECIPE_ID}/edit", json={"customTitle": "Meu bolo"})

        client.put(f"/api/recipes/{RECIPE_ID}/edit", json={"customInstructions": ["Bata tudo"]})

        saved = client.get("/api/recipes/my-collection").json()["recipes"][0]
        assert saved["customTitle"] == "Meu bolo"
        assert saved["customInstructions"] == ["Bata tudo"]

    @pytest.mark.parametrize("recipe_id", [RECIPE_ID, "not-a-uuid"])
    def test_edit_outside_collection_is_404(self, repo, client, recipe_id: str) -> None:
        response = client.put(f"/api/recipes/{recipe_id}/edit", json={"customTitle": "Meu bolo"})

        assert response.status_code == 404
        assert response.json()["detail"] == "Recipe not found in user collection"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"content": b"not json", "headers": {"content-type": "application/json"}},
            {"json": {"customTitle": ""}},
            {"json": {"customIngredients": "farinha"}},
            {"json": {"customInstructions": ["Bata", ""]}},
            {"json": ["Meu bolo"]},
        ],
    )
    def test_invalid_body_is_400(self, repo, client, kwargs) -> None:
        repo.saved.append(("user-1", RECIPE_ID))

        response = client.put(f"/api/recipes/{RECIPE_ID}/edit", **kwargs)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid request body"
        assert repo.custom == {}

    def test_edit_error_is_500(self, repo, client) -> None:
        repo.error = RepositoryError("update_user_recipe", "db down")

        response = client.put(f"/api/recipes/{RECIPE_ID}/edit", json={"customTitle": "Meu bolo"})

        assert response.status_code == 500

    def test_edit_and_remove_require_auth(self, client) -> None:
        app.dependency_overrides[get_supabase] = lambda: MagicMock()
        try:
            edit = client.put(f"/api/recipes/{RECIPE_ID}/edit", json={"customTitle": "Meu bolo"})
            remove = client.delete(f"/api/recipes/save/{RECIPE_ID}")
        finally:
            app.dependency_overrides.clear()

        assert edit.status_code == 401
        assert remove.status_code == 401
