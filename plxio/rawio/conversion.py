"""
Conversion of raw int16 samples to volts and of ticks to time.

Only the first sample of an A/D block carries a timestamp, the time of the
following samples is extrapolated from the channel sampling rate.
"""

import numpy as np
import quantities as pq

from plxio.errors import MissingCalibrationError

# full scale of the 12 bits converters: 2048 raw units
SPIKE_FULL_SCALE_V = 3.0
AD_FULL_SCALE_V = 5.0
RAW_FULL_SCALE = 2048.0


def check_gain(gain):
    if np.any(np.asarray(gain) == 0):
        raise MissingCalibrationError("gain is 0, cannot convert raw values to volts")


def spike_voltage(raw, gain):
    """Waveform raw value(s) to volts: raw * 3 / 2048 / gain"""
    check_gain(gain)
    if np.isscalar(raw):
        return raw * SPIKE_FULL_SCALE_V / RAW_FULL_SCALE / gain
    return np.asarray(raw, dtype="float64") * SPIKE_FULL_SCALE_V / RAW_FULL_SCALE / gain


def ad_voltage(raw, gain):
    """A/D raw value(s) to volts: raw * 5 / 2048 / gain"""
    check_gain(gain)
    if np.isscalar(raw):
        return raw * AD_FULL_SCALE_V / RAW_FULL_SCALE / gain
    return np.asarray(raw, dtype="float64") * AD_FULL_SCALE_V / RAW_FULL_SCALE / gain


def ticks_per_sample(master_frequency, channel_frequency):
    if channel_frequency == 0:
        raise MissingCalibrationError("channel sampling frequency is 0, cannot rebuild sample times")
    return int(master_frequency) // int(channel_frequency)


def reconstruct_continuous_timestamps(timestamp, n_samples, master_frequency, channel_frequency):
    """
    Timestamps (in ticks) of every sample of a continuous block.

    Parameters
    ----------
    timestamp: int or ADSampleBlockRecord
        Timestamp of the first sample, or the record itself.
    n_samples: int or None
        Number of samples. When None, taken from the record.
    master_frequency: int
        Tick frequency of the file (global header 'ADFrequency').
    channel_frequency: int
        Sampling rate of the channel (slow channel header 'ADFreq').

    Returns
    -------
    timestamps: np.ndarray of uint64
        timestamp + i * (master_frequency // channel_frequency)
    """
    if hasattr(timestamp, "samples"):
        if n_samples is None:
            n_samples = timestamp.samples.size
        timestamp = timestamp.timestamp
    step = ticks_per_sample(master_frequency, channel_frequency)
    return np.uint64(timestamp) + np.arange(n_samples, dtype="uint64") * np.uint64(step)


def ticks_to_seconds(ticks, master_frequency):
    if master_frequency == 0:
        raise MissingCalibrationError("tick frequency is 0, cannot convert ticks to seconds")
    times = np.asarray(ticks, dtype="float64") / float(master_frequency)
    return pq.Quantity(times, units="s")


def spike_gain_factor(global_header, dsp_header):
    """
    Volts per raw unit of the waveforms of a DSP channel, depending on the
    file version. For versions < 103 this is the same as :func:`spike_voltage`.
    """
    version = global_header["Version"]
    gain = dsp_header["Gain"]
    if gain == 0:
        raise MissingCalibrationError(f"DSP channel {dsp_header['Channel']} has a gain of 0")
    if version < 103:
        return SPIKE_FULL_SCALE_V / (RAW_FULL_SCALE * gain)
    half_range = 0.5 * 2.0 ** global_header["BitsPerSpikeSample"]
    max_v = global_header["SpikeMaxMagnitudeMV"] / 1000.0
    if version < 105:
        return max_v / (half_range * gain)
    preamp = global_header["SpikePreAmpGain"]
    if preamp == 0:
        raise MissingCalibrationError("SpikePreAmpGain is 0")
    return max_v * 1000.0 / (half_range * gain * preamp)


def ad_gain_factor(global_header, slow_header):
    """
    Volts per raw unit of a slow channel, depending on the file version.
    For versions 100 and 101 this is the same as :func:`ad_voltage`.
    """
    version = global_header["Version"]
    gain = slow_header["Gain"]
    if gain == 0:
        raise MissingCalibrationError(f"Slow channel {slow_header['Channel']} has a gain of 0")
    if version <= 101:
        return AD_FULL_SCALE_V / (RAW_FULL_SCALE * gain)
    preamp = slow_header["PreampGain"]
    if preamp == 0:
        raise MissingCalibrationError(f"Slow channel {slow_header['Channel']} has a preamp gain of 0")
    if version == 102:
        return AD_FULL_SCALE_V * 1000.0 / (RAW_FULL_SCALE * gain * preamp)
    half_range = 0.5 * 2.0 ** global_header["BitsPerSlowSample"]
    return global_header["SlowMaxMagnitudeMV"] / (half_range * gain * preamp)
