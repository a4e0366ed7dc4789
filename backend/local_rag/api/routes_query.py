"""Search and answer API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from local_rag.api.dependencies import AppState, get_app_state
from local_rag.models.dto import AnswerResponse, RetrievedChunkResponse, SearchRequest, SearchResponse
from local_rag.providers import embedding_client, generation_client

router = APIRouter()


@router.post("/search", response_model=SearchResponse, summary="Retrieve the most similar chunks")
def search(request: SearchRequest, state: AppState = Depends(get_app_state)) -> SearchResponse:
    embed = embedding_client(state.provider_config(request.provider))
    retrieved = state.retriever.retrieve(request.query, request.k, embed)
    return SearchResponse(results=[RetrievedChunkResponse.from_entity(item) for item in retrieved])


@router.post("/answer", response_model=AnswerResponse, summary="Answer a question grounded in stored chunks")
def answer(request: SearchRequest, state: AppState = Depends(get_app_state)) -> AnswerResponse:
    config = state.provider_config(request.provider)
    result = state.answerer.ask(
        request.query,
        embed=embedding_client(config),
        generate=generation_client(config),
        top_k=request.k,
    )
    return AnswerResponse(
        answer=result.answer,
        context=[RetrievedChunkResponse.from_entity(item) for item in result.context],
    )


__all__ = ["router"]
