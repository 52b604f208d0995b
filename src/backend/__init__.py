"""
Agent Relay - Supervisor routing for text and audio input
=========================================================

FastAPI backend that routes user input to language-model agents on OpenAI
or Azure OpenAI.

Key Features:
    - **Supervisor Routing**: A routing model picks the direct or RAG agent per request
    - **Audio Ingestion**: Single clips and chunked batches (sequential, parallel, merged)
    - **Streaming**: Ordered SSE / WebSocket events with one terminal error or done
    - **Conversation Continuity**: Provider-side conversations via the OpenAI Agents SDK
    - **Enterprise Logging**: Structured JSON logs with rotation and request correlation

Modules:
    api: FastAPI routes, services, middleware, and WebSocket handling
    core: Configuration constants and prompts
    models: Input variants, results, stream events and API schemas
    integrations: Model, transcription and vector store clients
    utils: Logging and client factories
"""
