"""
Integrations Module - External System Integrations
===================================================

Thin clients over the OpenAI platform, shared by every request.

Modules:
    model_client: Text generation through the Agents SDK (complete or streamed)
    transcription: Speech-to-text over the audio transcriptions API
    vector_stores: Vector store creation, listing and file ingestion
    realtime_sessions: Ephemeral client secrets for browser Realtime API sessions

Key Components:

Model Client (model_client.py):
    Runs a throwaway ``Agent`` per call against a provider-side conversation:
    - ``generate()`` returns a ``ModelResult`` with the text and a run summary
    - ``stream()`` returns a single-use, cancellable ``ModelStream``
    - SDK failures surface as ``ExternalServiceError``, never as empty text

Transcription Client (transcription.py):
    One provider call per audio buffer; provider errors are logged in full
    and re-raised as a generic ``TranscriptionFailedError``.

Example:
    Streaming a generation:

        from integrations.model_client import ModelClient

        model = ModelClient(openai_client, model="gpt-4.1")
        conversation_id = await model.create_conversation()
        async for event in model.stream("Hello", conversation_id=conversation_id):
            print(event.type, event.data)

See Also:
    :mod:`api.services.supervisor`: Routing built on these clients
"""
