"""
Spectrogram configuration.

``SonogramConfig`` fixes the framing, window and noise reduction applied when
a recording is turned into a spectrogram. ``MfccConfig`` adds the settings
used only by cepstral spectrograms.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

from ecoaudio.core.dsp.snr import NoiseReductionType, key_to_noise_reduction_type

if TYPE_CHECKING:
    from ecoaudio.core.config import Config

SUPPORTED_WINDOWS = ("hamming", "hann", "hanning", "blackman", "rectangular", "boxcar")


@dataclass
class MfccConfig:
    """Cepstral coefficient settings."""

    filterbank_count: int = 64
    cc_count: int = 12
    include_delta: bool = True
    include_double_delta: bool = True
    do_mel_scale: bool = False

    def __post_init__(self) -> None:
        if self.filterbank_count < 1:
            raise ValueError(f"filterbank_count must be positive, got {self.filterbank_count}")
        if not 0 < self.cc_count <= self.filterbank_count:
            raise ValueError(
                f"cc_count must be between 1 and filterbank_count ({self.filterbank_count}), got {self.cc_count}"
            )


@dataclass
class SonogramConfig:
    """
    Framing and noise reduction settings for a spectrogram.

    Attributes:
        window_size: Samples per frame; must be a power of two
        window_overlap: Fraction of overlap between consecutive frames, in [0, 1)
        window_function: Window applied to each frame before the FFT
        noise_reduction_type: Noise reduction applied by decibel spectrograms
        noise_reduction_parameter: Parameter for the noise reduction method
        do_mel_scale: Use a mel filter bank for cepstral spectrograms
        min_freq_band: Lower bound (Hz) of the band used by cepstral spectrograms
        max_freq_band: Upper bound (Hz) of that band; None means Nyquist
        delta_t: Frame offset for tri-frame acoustic vectors
        epsilon: Smallest amplitude considered non-zero (16-bit quantisation step)
        source_name: Name of the recording, for logging
    """

    window_size: int = 512
    window_overlap: float = 0.5
    window_function: str = "hamming"
    noise_reduction_type: NoiseReductionType = NoiseReductionType.NONE
    noise_reduction_parameter: float = 0.0
    do_mel_scale: bool = False
    mfcc_config: MfccConfig = field(default_factory=MfccConfig)
    min_freq_band: Optional[int] = None
    max_freq_band: Optional[int] = None
    delta_t: int = 2
    epsilon: float = 1.0 / 32768.0
    source_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.window_size < 2 or self.window_size & (self.window_size - 1):
            raise ValueError(f"window_size must be a power of two, got {self.window_size}")
        if not 0.0 <= self.window_overlap < 1.0:
            raise ValueError(f"window_overlap must be in [0, 1), got {self.window_overlap}")
        if self.window_function.lower() not in SUPPORTED_WINDOWS:
            raise ValueError(f"Unknown window function: {self.window_function}")
        if isinstance(self.noise_reduction_type, str):
            self.noise_reduction_type = key_to_noise_reduction_type(self.noise_reduction_type)
        if self.delta_t < 1:
            raise ValueError(f"delta_t must be at least 1, got {self.delta_t}")

    @property
    def window_step(self) -> int:
        """Samples between the starts of consecutive frames."""
        return max(1, int(round(self.window_size * (1.0 - self.window_overlap))))

    @property
    def freq_bin_count(self) -> int:
        """Number of non-DC FFT bins."""
        return self.window_size // 2

    @property
    def fft_bin_count(self) -> int:
        """Number of FFT bins including DC and Nyquist."""
        return self.window_size // 2 + 1

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SonogramConfig":
        """
        Build a config from a flat dictionary.

        Unknown keys are ignored. The cepstral keys (``filterbank_count``,
        ``cc_count``, ``include_delta``, ``include_double_delta``) populate the
        nested ``MfccConfig``.
        """
        do_mel = bool(data.get("do_mel_scale", False))
        mfcc = MfccConfig(
            filterbank_count=int(data.get("filterbank_count", 64)),
            cc_count=int(data.get("cc_count", 12)),
            include_delta=bool(data.get("include_delta", True)),
            include_double_delta=bool(data.get("include_double_delta", True)),
            do_mel_scale=do_mel,
        )
        return cls(
            window_size=int(data.get("window_size", 512)),
            window_overlap=float(data.get("window_overlap", 0.5)),
            window_function=str(data.get("window_function", "hamming")),
            noise_reduction_type=key_to_noise_reduction_type(data.get("noise_reduction_type")),
            noise_reduction_parameter=float(data.get("noise_reduction_parameter", 0.0)),
            do_mel_scale=do_mel,
            mfcc_config=mfcc,
            min_freq_band=data.get("min_freq_band"),
            max_freq_band=data.get("max_freq_band"),
            delta_t=int(data.get("delta_t", 2)),
            source_name=data.get("source_name"),
        )

    @classmethod
    def from_config(cls, config: "Config", **overrides: Any) -> "SonogramConfig":
        """
        Build from the ``[spectrogram]`` and ``[noise_reduction]`` sections of a Config.

        Overrides that are not None (e.g. command line options) replace the
        configured values; keys are those of :meth:`from_dict`.
        """
        data = dict(config.spectrogram)
        data["noise_reduction_type"] = config.get("noise_reduction", "type", "none")
        data["noise_reduction_parameter"] = config.get("noise_reduction", "parameter", 0.0)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "window_size": self.window_size,
            "window_overlap": self.window_overlap,
            "window_function": self.window_function,
            "noise_reduction_type": self.noise_reduction_type.value,
            "noise_reduction_parameter": self.noise_reduction_parameter,
            "do_mel_scale": self.do_mel_scale,
            "filterbank_count": self.mfcc_config.filterbank_count,
            "cc_count": self.mfcc_config.cc_count,
            "include_delta": self.mfcc_config.include_delta,
            "include_double_delta": self.mfcc_config.include_double_delta,
            "delta_t": self.delta_t,
        }
