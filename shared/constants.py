"""
Shared constants used across the transfer tool.
"""

# Audio formats
SUPPORTED_AUDIO_FORMATS = ["wav", "mp3", "pcm", "m4a", "aac"]
WAV_EXTENSION = "wav"

# Input limits
MAX_AUDIO_FILE_SIZE = 5 * 1024 * 1024 * 1024  # 5GB

# Canonical PCM WAV header layout
WAV_HEADER_SIZE = 44
WAV_RIFF_TAG = b"RIFF"
WAV_WAVE_TAG = b"WAVE"
WAV_RIFF_OVERHEAD = WAV_HEADER_SIZE - 8

# Resample defaults (speech backend expects 16kHz mono 16bit)
DEFAULT_TARGET_SAMPLE_RATE = 16000
DEFAULT_TARGET_CHANNELS = 1
DEFAULT_TARGET_BITS_PER_SAMPLE = 16

# Part size profiles
MIB = 1024 * 1024
DEFAULT_TRANSPORT_PART_SIZE = 20 * MIB
DEFAULT_MULTIPART_PART_SIZE = 5 * MIB
DEFAULT_SPLIT_PART_DATA_SIZE = 100 * MIB - WAV_HEADER_SIZE

# Upload settings
DEFAULT_URL_TTL_SECONDS = 3600
DEFAULT_PACING_DELAY_SECONDS = 0.01
COPY_BUFFER_SIZE = 256 * 1024

# Object keys
AUDIO_KEY_PREFIX = "audio"
PROCESSED_OBJECT_KEY_TEMPLATE = AUDIO_KEY_PREFIX + "/{timestamp}_{stem}.wav"
SPLIT_PART_KEY_TEMPLATE = AUDIO_KEY_PREFIX + "/{request_id}/part_{part_number}.wav"

# Credential broker
DEFAULT_BROKER_URL = "http://localhost:8000"
CREDENTIAL_TOKEN_PATH = "/get_oss_token"
CREDENTIAL_SUCCESS_CODE = 200

# Object store
DEFAULT_STORE_ENDPOINT = "https://oss-cn-shanghai.aliyuncs.com"
DEFAULT_BUCKET_NAME = "voicedrop"

# Configuration paths
DEFAULT_CONFIG_DIR = "~/.config/voicedrop"
CONFIG_FILENAME = "config.json"
SCRATCH_DIR_PREFIX = "voicedrop-"

# Network Settings
DEFAULT_NETWORK_TIMEOUT = 30  # seconds

# Environment
ENV_PREFIX = "VOICEDROP_"
