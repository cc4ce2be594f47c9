from scriptorium.core.config import AppPaths
from scriptorium.domain.models.prompt import PendingPrompt
from scriptorium.infrastructure.db.repos.preference_repo import PreferenceRepo
from scriptorium.infrastructure.db.repos.prompt_repo import PromptRepo


def test_include_images_defaults_to_true_and_persists(paths: AppPaths) -> None:
    repo = PreferenceRepo(paths.db_path)
    assert repo.include_images() is True

    repo.set_include_images(False)
    assert PreferenceRepo(paths.db_path).include_images() is False


def test_api_key_is_trimmed_and_blank_means_unset(paths: AppPaths) -> None:
    repo = PreferenceRepo(paths.db_path)
    assert repo.api_key() is None

    repo.set_api_key("  sk-test  ")
    assert repo.api_key() == "sk-test"

    repo.set_api_key("   ")
    assert repo.api_key() is None


def test_prompts_are_keyed_by_page_url(paths: AppPaths) -> None:
    repo = PromptRepo(paths.db_path)
    repo.record(PendingPrompt("a" * 64, "tab-1", "https://x.test/a", "2024-01-01T00:00:00Z"))
    repo.record(PendingPrompt("b" * 64, "tab-2", "https://x.test/a", "2024-01-01T00:00:01Z"))
    repo.record(PendingPrompt("a" * 64, "tab-3", "https://x.test/b", "2024-01-01T00:00:02Z"))

    prompt = repo.get_for_page("https://x.test/a")
    assert prompt is not None
    assert prompt.digest_sha256 == "b" * 64
    assert prompt.page_id == "tab-2"

    assert repo.clear_for_digest("a" * 64) == 1
    assert repo.get_for_page("https://x.test/b") is None

    assert repo.clear("https://x.test/a") == 1
    assert repo.clear() == 0
