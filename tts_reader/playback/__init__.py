"""Client-side playback core: adapter, session controller and their collaborators."""

from .adapter import PlaybackEngineAdapter
from .client import StaticTokenProvider, SynthesisApiClient, SynthesisApiError, TokenProvider
from .controller import PlaybackSession, PlaybackSessionController, estimate_duration
from .preferences import (
    JsonFileStorage,
    KeyValueStorage,
    MemoryStorage,
    PreferenceStore,
    UserPreferences,
)
from .primitives import (
    AudioFactory,
    AudioHandle,
    AudioResourceStore,
    InMemoryAudioStore,
    SpeechSynthesizer,
    SpeechUtterance,
    TempFileAudioStore,
)
from .types import Backend, PlaybackState, RemoteVoice, SynthesizedAudio, VoiceOption
from .voices import VoiceCatalog, expand_voice_options

__all__ = [
    "AudioFactory",
    "AudioHandle",
    "AudioResourceStore",
    "Backend",
    "InMemoryAudioStore",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "PlaybackEngineAdapter",
    "PlaybackSession",
    "PlaybackSessionController",
    "PlaybackState",
    "PreferenceStore",
    "RemoteVoice",
    "SpeechSynthesizer",
    "SpeechUtterance",
    "StaticTokenProvider",
    "SynthesisApiClient",
    "SynthesisApiError",
    "SynthesizedAudio",
    "TempFileAudioStore",
    "TokenProvider",
    "UserPreferences",
    "VoiceCatalog",
    "VoiceOption",
    "estimate_duration",
    "expand_voice_options",
]
