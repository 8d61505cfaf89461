# ---------------------------------------------------------------------------
# User-facing replies
# ---------------------------------------------------------------------------
SEND_VOICE_PROMPT = "Please send me a voice message to transcribe."
DOWNLOAD_FAILED_MESSAGE = "Error downloading the audio."
TRANSCRIPTION_FAILED_MESSAGE = "The audio could not be transcribed properly."
SUMMARY_FALLBACK_MESSAGE = "Unable to generate summary."

TRANSCRIPTION_REPLY_PREFIX = "Transcripcion:\n\n"
SUMMARY_REPLY_PREFIX = "Resumen:\n\n"

# ---------------------------------------------------------------------------
# Summarization prompt
# ---------------------------------------------------------------------------
SYSTEM_PROMPT = "Eres un asistente que resume textos de manera clara y concisa en español."
USER_PROMPT_TEMPLATE = "Resume el siguiente texto en pocas oraciones:\n\n{text}"

# ---------------------------------------------------------------------------
# Local audio files
# ---------------------------------------------------------------------------
AUDIO_FILE_PREFIX = "audio_"
AUDIO_FILE_SUFFIX = ".ogg"
PARTIAL_FILE_SUFFIX = ".part"
