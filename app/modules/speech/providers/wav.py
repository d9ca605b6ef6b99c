import struct

WAV_HEADER_SIZE = 44

# RIFF header, "fmt " subchunk (16 bytes, PCM) and "data" subchunk header
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def pcm_to_wav(
    pcm_data: bytes,
    sample_rate: int = 24000,
    num_channels: int = 1,
    bits_per_sample: int = 16,
) -> bytes:
    """Wraps raw little-endian PCM samples in a 44-byte RIFF/WAVE header."""
    data_size = len(pcm_data)
    block_align = num_channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    header = _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        1,
        num_channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_size,
    )
    return header + pcm_data


def pcm_duration_seconds(
    data_size: int,
    sample_rate: int = 24000,
    num_channels: int = 1,
    bits_per_sample: int = 16,
) -> float:
    return data_size / float(sample_rate * num_channels * bits_per_sample // 8)
