import struct

from app.modules.speech.providers.wav import WAV_HEADER_SIZE, pcm_duration_seconds, pcm_to_wav


def test_pcm_to_wav_header_is_byte_exact():
    pcm = b"\x01\x02\x03\x04"

    wav = pcm_to_wav(pcm)

    expected_header = (
        b"RIFF" + struct.pack("<I", 40) + b"WAVE"
        + b"fmt " + struct.pack("<I", 16)
        + struct.pack("<H", 1)        # PCM
        + struct.pack("<H", 1)        # mono
        + struct.pack("<I", 24000)    # sample rate
        + struct.pack("<I", 48000)    # byte rate
        + struct.pack("<H", 2)        # block align
        + struct.pack("<H", 16)       # bits per sample
        + b"data" + struct.pack("<I", 4)
    )
    assert len(wav) == WAV_HEADER_SIZE + len(pcm)
    assert wav[:WAV_HEADER_SIZE] == expected_header
    assert wav[WAV_HEADER_SIZE:] == pcm


def test_pcm_to_wav_stereo_parameters():
    wav = pcm_to_wav(b"\x00" * 8, sample_rate=16000, num_channels=2, bits_per_sample=16)

    channels, sample_rate, byte_rate, block_align, bits = struct.unpack("<HIIHH", wav[22:36])
    assert (channels, sample_rate, byte_rate, block_align, bits) == (2, 16000, 64000, 4, 16)


def test_pcm_to_wav_empty_payload():
    wav = pcm_to_wav(b"")

    assert len(wav) == WAV_HEADER_SIZE
    assert struct.unpack("<I", wav[4:8])[0] == 36
    assert struct.unpack("<I", wav[40:44])[0] == 0


def test_pcm_duration_seconds():
    assert pcm_duration_seconds(48000) == 1.0
    assert pcm_duration_seconds(4800) == 0.1
