# services/files.py
"""
Service for audio file housekeeping.
"""

from typing import List, Optional

from ecoaudio.core.files.renamer import RenameResult, rename_audio_files

from .base import BaseService, ServiceResult


class FileRenameService(BaseService):
    """Renames undated recordings after their UTC start time."""

    def rename(
        self,
        directory: str,
        timezone: Optional[str] = None,
        recursive: bool = False,
        dry_run: bool = False,
        max_workers: Optional[int] = None,
    ) -> ServiceResult[List[RenameResult]]:
        error = self._validate_input_path(directory)
        if error:
            return ServiceResult.fail(error)

        try:
            results = rename_audio_files(directory, timezone, recursive, dry_run, max_workers)
        except Exception as e:
            return ServiceResult.fail(f"Renaming failed: {e}")

        renamed = sum(1 for r in results if r.renamed)
        warnings = [f"{r.original_path}: {r.error}" for r in results if r.error]
        verb = "Would rename" if dry_run else "Renamed"
        return ServiceResult.ok(
            data=results,
            message=f"{verb} {renamed} of {len(results)} files",
            warnings=warnings,
        )
