def test_root_lists_endpoints(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["submit_prompt"] == "POST /prompt"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["queue_running"] == 0
    assert body["queue_pending"] == 0


def test_submit_and_poll_history(client, output_dir, wait_until):
    response = client.post("/prompt", json={"client_id": "c1", "prompt": {"a": 1}})
    assert response.status_code == 200
    prompt_id = response.json()["prompt_id"]

    queue_state = client.get("/queue").json()
    listed = [e[1] for e in queue_state["queue_running"] + queue_state["queue_pending"]]
    history = client.get(f"/history/{prompt_id}").json()
    # Either still queued, or already done with the fast test delay
    assert prompt_id in listed or prompt_id in history

    history = wait_until(lambda: client.get(f"/history/{prompt_id}").json())

    record = history[prompt_id]
    assert record["prompt"] == {"a": 1}
    assert record["outputs"]["9"]["images"][0]["filename"] == f"{prompt_id[:8]}.png"
    assert record["status"]["status_str"] == "success"
    assert record["status"]["completed"] is True
    assert [m[0] for m in record["status"]["messages"]] == [
        "execution_start",
        "execution_cached",
    ]
    assert (output_dir / f"output_{prompt_id[:8]}.jpg").is_file()

    queue_state = client.get("/queue").json()
    assert queue_state == {"queue_running": [], "queue_pending": []}


def test_queue_never_shows_two_running(client, wait_until):
    ids = [
        client.post("/prompt", json={"client_id": "c", "prompt": {"i": i}}).json()["prompt_id"]
        for i in range(3)
    ]

    def all_done():
        state = client.get("/queue").json()
        assert len(state["queue_running"]) <= 1
        running = {e[1] for e in state["queue_running"]}
        pending = {e[1] for e in state["queue_pending"]}
        assert not running & pending
        return all(client.get(f"/history/{i}").json() for i in ids)

    wait_until(all_done)


def test_history_unknown_prompt_is_404(client):
    response = client.get("/history/unknown-id")

    assert response.status_code == 404
    assert response.json() == {"error": "Prompt not found"}


def test_malformed_json_is_400(client):
    response = client.post(
        "/prompt",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert "error" in response.json()


def test_wrong_field_types_are_400(client):
    response = client.post("/prompt", json={"client_id": 5, "prompt": [1, 2]})

    assert response.status_code == 400
    assert "client_id" in response.json()["error"]


def test_missing_fields_are_accepted(client):
    response = client.post("/prompt", json={})

    assert response.status_code == 200
    assert response.json()["prompt_id"]


def test_output_failure_still_reports_completed(queue, client, source_image, wait_until):
    source_image.unlink()

    prompt_id = client.post("/prompt", json={"client_id": "c", "prompt": {"a": 1}}).json()[
        "prompt_id"
    ]

    history = wait_until(lambda: client.get(f"/history/{prompt_id}").json())
    assert history[prompt_id]["status"]["completed"] is True
    assert history[prompt_id]["outputs"]["9"]["images"]


def test_null_client_id_is_accepted(client, queue):
    response = client.post("/prompt", json={"client_id": None, "prompt": {"a": 1}})

    assert response.status_code == 200
    job = queue.get_job(response.json()["prompt_id"])
    assert job.client_id == ""
    assert job.payload == {"a": 1}


def test_null_body_is_accepted(client, queue):
    response = client.post(
        "/prompt",
        content=b"null",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 200
    job = queue.get_job(response.json()["prompt_id"])
    assert job.client_id == ""
    assert job.payload is None
