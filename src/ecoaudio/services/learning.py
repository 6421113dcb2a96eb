# services/learning.py
"""
Service for unsupervised feature learning.
"""

from pathlib import Path
from typing import List, Optional

import pandas as pd

from ecoaudio.core.feature_learning import FeatureLearningResult, FeatureLearningSettings, learn_cluster_centroids

from .base import BaseService, ServiceResult


class FeatureLearningService(BaseService):
    """
    Service for learning spectrogram patch centroids from a folder of recordings.
    """

    def learn_centroids(
        self,
        directory: str,
        settings: Optional[FeatureLearningSettings] = None,
        output_dir: Optional[str] = None,
    ) -> ServiceResult[FeatureLearningResult]:
        """
        Learn cluster centroids and optionally write them to CSV.

        One file per frequency band is written to ``output_dir``:
        ``centroids_band<i>.csv`` with centroids ordered by cluster size,
        largest first, and a ``cluster_size`` column.
        """
        error = self._validate_input_path(directory)
        if error:
            return ServiceResult.fail(error)

        try:
            result = learn_cluster_centroids(directory, settings)
            written = self._write_centroids(result, output_dir) if output_dir else []
            return ServiceResult.ok(
                data=result,
                message=f"Learned {len(result.bands)} band(s) of centroids from {result.file_count} recordings",
                files=written,
            )
        except Exception as e:
            return ServiceResult.fail(f"Feature learning failed: {e}")

    def _write_centroids(self, result: FeatureLearningResult, output_dir: str) -> List[str]:
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        written = []
        for i, band in enumerate(result.bands):
            order = band.sort_order
            df = pd.DataFrame(band.centroids[order])
            df.insert(0, "cluster_size", [band.sizes.get(c, 0) for c in order])
            df.insert(0, "cluster_id", order)
            path = out / f"centroids_band{i}.csv"
            df.to_csv(path, index=False)
            written.append(str(path))
        return written
