"""Tests for explicit episode and podcast operations."""

import os
from unittest.mock import Mock

import pytest

from podkeeper.db.models import DownloadStatus
from podkeeper.exceptions import NotFoundError
from podkeeper.podcast.downloader import EpisodeDownloader
from podkeeper.podcast.episode_service import EpisodeService
from podkeeper.podcast.settings import SyncSettings


@pytest.fixture
def service(repository):
    return EpisodeService(repository)


@pytest.fixture
def episode(repository, sample_podcast):
    return repository.create_episode_if_absent(
        podcast_id=sample_podcast.id,
        guid="g1",
        title="Episode 1",
        enclosure_url="https://example.com/g1.mp3",
    )


@pytest.fixture
def downloaded_episode(repository, episode, tmp_path):
    path = tmp_path / "g1.mp3"
    path.write_bytes(b"audio")
    repository.mark_download_complete(episode.id, str(path), 5)
    return repository.get_episode(episode.id)


class TestEpisodeOperations:
    """Tests for per-episode operations."""

    def test_delete_episode_file(self, service, repository, downloaded_episode):
        path = downloaded_episode.download_path

        updated = service.delete_episode_file(downloaded_episode.id)

        assert not os.path.exists(path)
        assert updated.download_status == DownloadStatus.DELETED
        assert updated.download_path is None

    def test_delete_episode_file_missing_on_disk(self, service, repository, downloaded_episode):
        os.remove(downloaded_episode.download_path)

        updated = service.delete_episode_file(downloaded_episode.id)

        assert updated.download_status == DownloadStatus.DELETED

    def test_deleted_episode_not_pending(self, service, repository, episode):
        service.delete_episode_file(episode.id)

        assert repository.get_episodes_pending_download() == []

    def test_queue_deleted_episode(self, service, repository, episode):
        repository.mark_not_downloaded(episode.id, DownloadStatus.DELETED)

        updated = service.queue_episode(episode.id)

        assert updated.download_status == DownloadStatus.NOT_DOWNLOADED
        assert [e.id for e in repository.get_episodes_pending_download()] == [episode.id]

    def test_queue_clears_previous_error(self, service, repository, episode):
        repository.mark_download_failed(episode.id, "timeout")

        assert service.queue_episode(episode.id).download_error is None

    def test_queue_downloaded_episode_unchanged(self, service, downloaded_episode):
        updated = service.queue_episode(downloaded_episode.id)

        assert updated.download_status == DownloadStatus.DOWNLOADED
        assert updated.download_path == downloaded_episode.download_path

    def test_unknown_episode(self, service):
        with pytest.raises(NotFoundError):
            service.queue_episode("missing")
        with pytest.raises(NotFoundError):
            service.delete_episode_file("missing")

    def test_download_episode_now(self, repository, episode):
        downloader = Mock()
        service = EpisodeService(repository, downloader)
        settings = SyncSettings()

        service.download_episode_now(episode.id, settings)

        downloader.download_episode.assert_called_once()
        called_episode, called_settings = downloader.download_episode.call_args[0]
        assert called_episode.id == episode.id
        assert called_settings is settings

    def test_download_episode_now_requires_downloader(self, service, episode):
        with pytest.raises(RuntimeError):
            service.download_episode_now(episode.id)

    def test_bookmark_and_played(self, service, episode):
        assert service.set_bookmark(episode.id).bookmarked_at is not None
        assert service.set_bookmark(episode.id, False).bookmarked_at is None
        assert service.set_played(episode.id).is_played is True


class TestPodcastOperations:
    """Tests for per-podcast operations."""

    def test_pause_and_resume(self, service, sample_podcast):
        assert service.set_paused(sample_podcast.id, True).is_paused is True
        assert service.set_paused(sample_podcast.id, False).is_paused is False

    def test_pause_unknown(self, service):
        with pytest.raises(NotFoundError):
            service.set_paused("missing", True)

    def test_queue_all_episodes(self, service, repository, sample_podcast, downloaded_episode):
        other = repository.create_episode_if_absent(
            podcast_id=sample_podcast.id,
            guid="g2",
            title="Episode 2",
            enclosure_url="https://example.com/g2.mp3",
            download_status=DownloadStatus.DELETED,
        )

        assert service.queue_all_episodes(sample_podcast.id) == 1
        assert repository.get_episode(other.id).download_status == DownloadStatus.NOT_DOWNLOADED

    def test_delete_podcast_episodes(self, service, repository, sample_podcast, downloaded_episode):
        path = downloaded_episode.download_path

        assert service.delete_podcast_episodes(sample_podcast.id) == 1
        assert not os.path.exists(path)
        assert repository.get_episode(downloaded_episode.id).download_status == DownloadStatus.DELETED

    def test_delete_podcast_removes_folder(self, repository, sample_podcast, tmp_path):
        downloader = EpisodeDownloader(repository, str(tmp_path / "downloads"))
        service = EpisodeService(repository, downloader)
        folder = downloader.podcast_directory(sample_podcast)
        os.makedirs(folder)
        open(os.path.join(folder, "leftover.mp3"), "wb").close()

        assert service.delete_podcast(sample_podcast.id) is True

        assert repository.get_podcast(sample_podcast.id) is None
        assert not os.path.exists(folder)

    def test_delete_podcast_keep_files(self, service, repository, sample_podcast, downloaded_episode):
        path = downloaded_episode.download_path

        service.delete_podcast(sample_podcast.id, delete_files=False)

        assert os.path.exists(path)
        assert repository.get_episode(downloaded_episode.id) is None


class TestSettingsOperations:
    """Tests for editing download settings."""

    def test_defaults(self, service):
        assert service.get_settings() == SyncSettings()

    def test_update_settings(self, service):
        settings = service.update_settings(initial_download_count=2, auto_download=False)

        assert settings.initial_download_count == 2
        assert settings.auto_download is False
        assert service.get_settings().initial_download_count == 2

    def test_unknown_setting_rejected(self, service):
        with pytest.raises(ValueError, match="Unknown settings"):
            service.update_settings(volume=11)

    def test_invalid_value_not_persisted(self, service):
        with pytest.raises(ValueError):
            service.update_settings(max_download_concurrency=0)

        assert service.get_settings().max_download_concurrency == 5
