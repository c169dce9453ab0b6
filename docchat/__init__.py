"""DocChat - chat over document collections with cited, streamed answers.

Combines FastAPI for HTTP streaming, NiceGUI for the chat interface,
and Pydantic for data validation.

Components:
    - api: HTTP endpoints and Server-Sent Event streaming
    - streaming: Paced word-by-word reveal of complete answers
    - citations: ``[n]`` marker extraction and source resolution
    - providers: Mock, demo and real answer providers; document collections
    - parsing: PDF text extraction for citation snippets
    - ui: Web interface for chat interactions
    - models: Answer, citation and API schemas
"""

__version__ = "0.1.0"
