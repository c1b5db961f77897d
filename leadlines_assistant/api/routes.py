"""/v1 conversation, message and file endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Response, UploadFile
from pydantic import BaseModel, Field

from ..identity.principal import Principal
from ..provider.schemas import Message
from ..schemas import AssistantRecord, FileRecord, FileUpload, ThreadRecord
from ..services.conversation import ConversationFacade, assistant_reply
from .deps import get_facade, get_principal

router = APIRouter()


class CreateThreadRequest(BaseModel):
    title: str | None = Field(default=None, max_length=255)


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1)
    timeout: float | None = Field(default=None, gt=0)


class ThreadsResponse(BaseModel):
    threads: list[ThreadRecord]


class MessagesResponse(BaseModel):
    messages: list[Message]
    reply: Message | None = None


class FilesResponse(BaseModel):
    files: list[FileRecord]


@router.get("/assistant", response_model=AssistantRecord)
async def get_assistant(
    principal: Principal = Depends(get_principal),
    facade: ConversationFacade = Depends(get_facade),
):
    return await facade.get_or_create_assistant(principal)


@router.get("/threads", response_model=ThreadsResponse)
async def list_threads(
    principal: Principal = Depends(get_principal),
    facade: ConversationFacade = Depends(get_facade),
):
    return ThreadsResponse(threads=await facade.list_threads(principal))


@router.post("/threads", response_model=ThreadRecord, status_code=201)
async def create_thread(
    body: CreateThreadRequest,
    principal: Principal = Depends(get_principal),
    facade: ConversationFacade = Depends(get_facade),
):
    return await facade.create_thread(principal, body.title)


@router.delete("/threads/{thread_id}", status_code=204)
async def delete_thread(
    thread_id: str,
    principal: Principal = Depends(get_principal),
    facade: ConversationFacade = Depends(get_facade),
):
    await facade.delete_thread(principal, thread_id)
    return Response(status_code=204)


@router.get("/threads/{thread_id}/messages", response_model=MessagesResponse)
async def list_messages(
    thread_id: str,
    principal: Principal = Depends(get_principal),
    facade: ConversationFacade = Depends(get_facade),
):
    messages = await facade.list_messages(principal, thread_id)
    return MessagesResponse(messages=messages, reply=assistant_reply(messages))


@router.post("/threads/{thread_id}/messages", response_model=MessagesResponse)
async def send_message(
    thread_id: str,
    body: SendMessageRequest,
    principal: Principal = Depends(get_principal),
    facade: ConversationFacade = Depends(get_facade),
):
    messages = await facade.send_message(principal, thread_id, body.content, timeout=body.timeout)
    return MessagesResponse(messages=messages, reply=assistant_reply(messages))


@router.get("/files", response_model=FilesResponse)
async def list_files(
    principal: Principal = Depends(get_principal),
    facade: ConversationFacade = Depends(get_facade),
):
    return FilesResponse(files=await facade.list_files(principal))


@router.post("/files", response_model=FileRecord, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    principal: Principal = Depends(get_principal),
    facade: ConversationFacade = Depends(get_facade),
):
    content = await file.read()
    upload = FileUpload(filename=file.filename or "", content=content, content_type=file.content_type)
    return await facade.upload_file(principal, upload)


@router.post("/files/{file_id}/attachment", response_model=FileRecord, status_code=201)
async def attach_file(
    file_id: str,
    principal: Principal = Depends(get_principal),
    facade: ConversationFacade = Depends(get_facade),
):
    return await facade.attach_file(principal, file_id)


@router.delete("/files/{file_id}/attachment", status_code=204)
async def remove_file(
    file_id: str,
    principal: Principal = Depends(get_principal),
    facade: ConversationFacade = Depends(get_facade),
):
    await facade.remove_file(principal, file_id)
    return Response(status_code=204)


@router.delete("/files/{file_id}", status_code=204)
async def delete_file(
    file_id: str,
    principal: Principal = Depends(get_principal),
    facade: ConversationFacade = Depends(get_facade),
):
    await facade.delete_file(principal, file_id)
    return Response(status_code=204)
