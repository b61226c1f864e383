"""API integration tests for the document import service."""

from fastapi.testclient import TestClient

from conftest import MODEL, MemoryBlobStore, RecordingQueue, make_pdf
from main import app

client = TestClient(app)
HTTP_200_OK = 200
HTTP_201_CREATED = 201
HTTP_204_NO_CONTENT = 204
HTTP_400_BAD_REQUEST = 400
HTTP_404_NOT_FOUND = 404


def test_health() -> None:
    """Test the /health endpoint returns status ok."""
    response = client.get("/health")
    if response.status_code != HTTP_200_OK:
        msg = f"Expected status {HTTP_200_OK}, got {response.status_code}"
        raise AssertionError(msg)
    if response.json() != {"status": "ok"}:
        msg = f"Expected response {{'status': 'ok'}}, got {response.json()}"
        raise AssertionError(msg)


def test_scalar_docs() -> None:
    """Test the /scalar endpoint returns OpenAPI or Swagger docs."""
    response = client.get("/scalar")
    if response.status_code != HTTP_200_OK:
        msg = f"Expected status {HTTP_200_OK}, got {response.status_code}"
        raise AssertionError(msg)
    if not ("openapi" in response.text or "swagger" in response.text):
        msg = "Expected 'openapi' or 'swagger' in response text"
        raise AssertionError(msg)


def test_process_document_requires_record(api: RecordingQueue) -> None:
    """Test /process-document rejects a payload without record.id and queues nothing."""
    for body in ({}, {"record": {}}, {"record": {"file_path": "a.pdf"}}):
        response = client.post("/process-document", json=body)
        if response.status_code != HTTP_400_BAD_REQUEST:
            msg = f"Expected status {HTTP_400_BAD_REQUEST} for {body}, got {response.status_code}"
            raise AssertionError(msg)
        if response.json() != {"error": "Missing record"}:
            msg = f"Unexpected body: {response.json()}"
            raise AssertionError(msg)
    if api.tasks:
        msg = "Expected no queued runs"
        raise AssertionError(msg)


def test_process_document_acknowledges_immediately(api: RecordingQueue) -> None:
    """Test /process-document queues the run and returns before it executes."""
    body = {
        "record": {"id": "job-1", "file_path": "user-1/1_extrato.pdf", "file_name": "extrato.pdf"},
        "mode": "worker",
        "chunkId": 4,
        "pageStart": 15,
        "pageEnd": 30,
        "totalChunks": 3,
        "model": MODEL,
    }
    response = client.post("/process-document", json=body)
    if response.status_code != HTTP_200_OK:
        msg = f"Expected status {HTTP_200_OK}, got {response.status_code}"
        raise AssertionError(msg)
    if response.json().get("status") != "queued" or response.json().get("success") is not True:
        msg = f"Unexpected body: {response.json()}"
        raise AssertionError(msg)
    if len(api.tasks) != 1:
        msg = f"Expected one queued run, got {len(api.tasks)}"
        raise AssertionError(msg)
    (trigger,) = api.tasks[0][1]
    if (trigger.chunk_id, trigger.page_start, trigger.page_end, trigger.total_chunks) != (4, 15, 30, 3):
        msg = f"Unexpected trigger: {trigger}"
        raise AssertionError(msg)


def test_unknown_import_is_404(api: RecordingQueue) -> None:
    """Test job endpoints return 404 for unknown ids."""
    _ = api
    for path in ("/imports/missing", "/imports/missing/chunks", "/imports/missing/file-url"):
        response = client.get(path)
        if response.status_code != HTTP_404_NOT_FOUND:
            msg = f"Expected status {HTTP_404_NOT_FOUND} for {path}, got {response.status_code}"
            raise AssertionError(msg)
    if client.delete("/imports/missing").status_code != HTTP_404_NOT_FOUND:
        msg = "Expected deleting an unknown import to return 404"
        raise AssertionError(msg)


def test_upload_history_and_delete(api: RecordingQueue, blob_store: MemoryBlobStore) -> None:
    """Test an uploaded document shows up in the user's history until deleted, and its file goes with it."""
    files = {"file": ("extrato.pdf", make_pdf(1), "application/pdf")}
    response = client.post("/imports", files=files, data={"user_id": "user-9", "model": MODEL})
    job_id = response.json()["job_id"]
    if len(blob_store.files) != 1:
        msg = f"Expected the upload to be stored, got {list(blob_store.files)}"
        raise AssertionError(msg)

    history = client.get("/imports", params={"user_id": "user-9"}).json()
    if [item["id"] for item in history] != [job_id] or history[0]["progress"] != 10:  # noqa: PLR2004
        msg = f"Unexpected history: {history}"
        raise AssertionError(msg)
    if history[0]["status_description"] != "Arquivo enviado. Fila de processamento...":
        msg = f"Unexpected status text: {history[0]['status_description']}"
        raise AssertionError(msg)
    url = client.get(f"/imports/{job_id}/file-url").json()["url"]
    if not url.startswith("https://blobs.test/user-9/"):
        msg = f"Unexpected signed URL: {url}"
        raise AssertionError(msg)
    if client.delete(f"/imports/{job_id}").status_code != HTTP_204_NO_CONTENT:
        msg = "Expected delete to return 204"
        raise AssertionError(msg)
    if client.get("/imports", params={"user_id": "user-9"}).json() != []:
        msg = "Expected empty history after delete"
        raise AssertionError(msg)
    if blob_store.files:
        msg = f"Expected the source file to be deleted, got {list(blob_store.files)}"
        raise AssertionError(msg)
    if len(api.tasks) != 1:
        msg = "Expected the upload to queue one dispatcher run"
        raise AssertionError(msg)


def test_knowledge_base_crud(api: RecordingQueue) -> None:
    """Test knowledge entries can be added, listed by type, and deleted."""
    _ = api
    response = client.post("/knowledge", json={"type": "supplier", "content": "  FOO SA  "})
    if response.status_code != HTTP_201_CREATED or response.json()["content"] != "FOO SA":
        msg = f"Unexpected create response: {response.status_code} {response.text}"
        raise AssertionError(msg)
    entry_id = response.json()["id"]
    suppliers = [e["content"] for e in client.get("/knowledge", params={"type": "supplier"}).json()]
    if suppliers != ["FOO SA", "ACME LTDA"]:
        msg = f"Unexpected suppliers: {suppliers}"
        raise AssertionError(msg)
    if client.post("/knowledge", json={"type": "rumor", "content": "x"}).status_code != 422:  # noqa: PLR2004
        msg = "Expected an unknown entry type to be rejected"
        raise AssertionError(msg)
    if client.delete(f"/knowledge/{entry_id}").status_code != HTTP_204_NO_CONTENT:
        msg = "Expected delete to return 204"
        raise AssertionError(msg)
    if client.delete(f"/knowledge/{entry_id}").status_code != HTTP_404_NOT_FOUND:
        msg = "Expected a second delete to return 404"
        raise AssertionError(msg)


def test_models_lists_prices() -> None:
    """Test /models lists the selectable models with prices."""
    models = {m["id"]: m for m in client.get("/models").json()}
    if MODEL not in models or models[MODEL]["input_price"] != 0.10:  # noqa: PLR2004
        msg = f"Unexpected models: {list(models)}"
        raise AssertionError(msg)


def test_chunk_progress_of_large_upload(api: RecordingQueue) -> None:
    """Test a large upload reports its chunks once the dispatcher ran."""
    files = {"file": ("extrato.pdf", make_pdf(40), "application/pdf")}
    job_id = client.post("/imports", files=files, data={"user_id": "user-1", "model": MODEL}).json()["job_id"]
    fn, args = api.tasks.pop(0)
    fn(*args)

    chunks = client.get(f"/imports/{job_id}/chunks").json()
    if (chunks["total"], chunks["completed"], chunks["progress"]) != (3, 0, 20):
        msg = f"Unexpected chunk progress: {chunks}"
        raise AssertionError(msg)
    if [(c["page_start"], c["page_end"]) for c in chunks["chunks"]] != [(0, 15), (15, 30), (30, 40)]:
        msg = f"Unexpected chunk ranges: {chunks['chunks']}"
        raise AssertionError(msg)
    if len(api.tasks) != 3:  # noqa: PLR2004
        msg = f"Expected 3 queued worker runs, got {len(api.tasks)}"
        raise AssertionError(msg)
