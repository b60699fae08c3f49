"""Unit tests for CollectionJob."""

import pytest
from pydantic import ValidationError

from scout.models.job import CollectionJob, JobPriority, JobStatus, SourceType


class TestCollectionJob:
    """Tests for CollectionJob."""

    def test_defaults(self):
        """Test a new job starts pending with history."""
        job = CollectionJob(source_url="github.com/apache/spark")

        assert job.status == JobStatus.PENDING
        assert job.priority == JobPriority.NORMAL
        assert job.source_type == SourceType.WEBSITE
        assert job.progress == 0
        assert job.history == [JobStatus.PENDING]
        assert job.is_active is True

    def test_progress_range(self):
        """Test progress is bounded to 0-100."""
        with pytest.raises(ValidationError):
            CollectionJob(source_url="x.org", progress=101)

    def test_source_url_required(self):
        """Test that the URL must not be empty."""
        with pytest.raises(ValidationError):
            CollectionJob(source_url="")

    @pytest.mark.parametrize(
        "status,active",
        [
            (JobStatus.PENDING, True),
            (JobStatus.PROCESSING, True),
            (JobStatus.COMPLETED, False),
            (JobStatus.FAILED, False),
        ],
    )
    def test_status_is_active(self, status, active):
        """Test which statuses hold the dedup slot."""
        assert status.is_active is active
