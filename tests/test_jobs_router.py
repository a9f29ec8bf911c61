import applymate.routers.jobs as jobs_mod
from applymate.models.chat_message import ChatMessage
from applymate.models.job_application import JobApplication
from applymate.models.job_resume_used import JobResumeUsed
from applymate.models.resume_suggestion import ResumeSuggestion
from applymate.repos import chat_repo, job_repo, resume_repo
from applymate.services.job_page import JobPageFetchError
from applymate.services.llm_client import LLMDisabledError

from conftest import MINIMAL_PDF

DESCRIPTION = "Build and operate Python services on AWS for a growing platform team."


def _resume(db, user_id="user-1", name="Main resume", text="Python engineer with AWS experience"):
    return resume_repo.create(db, user_id, name, f"resumes/1700000000000-{name.replace(' ', '_')}.pdf", text)


def _job(db, resume, user_id="user-1", **overrides):
    fields = {
        "company": "Acme",
        "role": "Backend Engineer",
        "job_url": "https://jobs.example.com/1",
        "job_description": DESCRIPTION,
    }
    fields.update(overrides)
    job, _ = job_repo.create(db, user_id, resume_id=resume.id, **fields)
    return job


def test_add_job_defaults_to_saved_and_creates_empty_suggestion(db_client, db_session):
    resume = _resume(db_session)
    resp = db_client.post(
        "/api/jobs/add",
        json={
            "company": "Acme",
            "role": "Backend Engineer",
            "jobUrl": "https://jobs.example.com/1",
            "jobDescription": DESCRIPTION,
            "resumeId": resume.id,
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["job"]["status"] == "saved"
    assert body["suggestion"]["jobId"] == body["job"]["id"]
    assert body["suggestion"]["missingSkills"] == []
    links = db_session.query(JobResumeUsed).filter(JobResumeUsed.job_id == body["job"]["id"]).all()
    assert [link.resume_id for link in links] == [resume.id]


def test_add_job_rejects_resume_of_another_user(db_client, db_session):
    foreign = _resume(db_session, user_id="user-2")
    resp = db_client.post(
        "/api/jobs/add",
        json={"company": "Acme", "role": "Dev", "jobUrl": "https://x.example.com", "resumeId": foreign.id},
    )
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Resume not found"}
    assert db_session.query(JobApplication).count() == 0


def test_add_job_validation_errors_use_wire_field_names(db_client):
    resp = db_client.post(
        "/api/jobs/add",
        json={"company": "Acme", "role": "Dev", "jobUrl": "not-a-url", "jobDescription": "too short", "resumeId": "r"},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert "jobUrl" in body["fieldErrors"]
    assert "jobDescription" in body["fieldErrors"]


def test_add_job_rejects_unknown_status(db_client, db_session):
    resume = _resume(db_session)
    resp = db_client.post(
        "/api/jobs/add",
        json={"company": "A", "role": "B", "jobUrl": "https://a.example.com", "resumeId": resume.id, "status": "ghosted"},
    )
    assert resp.status_code == 400
    assert "status" in resp.json()["fieldErrors"]


def test_list_jobs_filters_searches_and_includes_resume_and_score(db_client, db_session):
    resume = _resume(db_session)
    applied = _job(db_session, resume, company="Globex", status="applied")
    _job(db_session, resume, company="Initech", role="Data Engineer")
    _job(db_session, _resume(db_session, user_id="user-2"), user_id="user-2", company="Globex")
    job_repo.upsert_suggestion(db_session, applied.id, {"matchScore": 77})

    resp = db_client.get("/api/jobs", params={"status": "applied"})
    assert resp.status_code == 200
    jobs = resp.json()["jobs"]
    assert [j["id"] for j in jobs] == [applied.id]
    assert jobs[0]["resumeUsed"] == "Main resume"
    assert jobs[0]["resumeId"] == resume.id
    assert jobs[0]["matchScore"] == 77

    resp = db_client.get("/api/jobs", params={"status": "all", "search": "GLOBEX"})
    assert [j["company"] for j in resp.json()["jobs"]] == ["Globex"]

    resp = db_client.get("/api/jobs", params={"search": "data eng"})
    assert [j["company"] for j in resp.json()["jobs"]] == ["Initech"]


def test_list_jobs_unknown_sort_falls_back_to_newest(db_client, db_session):
    _job(db_session, _resume(db_session))
    resp = db_client.get("/api/jobs", params={"sort": "sideways"})
    assert resp.status_code == 200
    assert len(resp.json()["jobs"]) == 1


def test_get_job_of_another_user_is_not_found(db_client, db_session):
    other = _job(db_session, _resume(db_session, user_id="user-2"), user_id="user-2")
    assert db_client.get(f"/api/jobs/{other.id}").status_code == 404
    assert db_client.patch(f"/api/jobs/{other.id}", json={"status": "applied"}).status_code == 404
    assert db_client.delete(f"/api/jobs/{other.id}").status_code == 404
    assert db_session.query(JobApplication).filter(JobApplication.id == other.id).count() == 1


def test_get_job_detail_includes_resume_suggestion_and_chats(db_client, db_session, fake_s3):
    resume = _resume(db_session)
    job = _job(db_session, resume)
    chat_repo.add_job_message(db_session, job.id, "user", "How do I prepare?")

    resp = db_client.get(f"/api/jobs/{job.id}")
    assert resp.status_code == 200
    detail = resp.json()["job"]
    assert detail["resume"]["id"] == resume.id
    assert detail["resume"]["fileUrl"].startswith("https://signed.example/resumes/")
    assert detail["aiResult"]["jobId"] == job.id
    assert [c["message"] for c in detail["chats"]] == ["How do I prepare?"]


def test_patch_job_updates_fields_and_replaces_resume_link(db_client, db_session):
    first = _resume(db_session, name="First")
    second = _resume(db_session, name="Second")
    job = _job(db_session, first)

    resp = db_client.patch(f"/api/jobs/{job.id}", json={"status": "interviewing", "resumeId": second.id})
    assert resp.status_code == 200
    assert resp.json()["job"]["status"] == "interviewing"
    links = db_session.query(JobResumeUsed).filter(JobResumeUsed.job_id == job.id).all()
    assert [link.resume_id for link in links] == [second.id]


def test_patch_job_with_foreign_resume_is_not_found(db_client, db_session):
    job = _job(db_session, _resume(db_session))
    foreign = _resume(db_session, user_id="user-2")
    resp = db_client.patch(f"/api/jobs/{job.id}", json={"resumeId": foreign.id})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Resume not found"


def test_delete_job_removes_children_even_when_storage_fails(db_client, db_session, fake_s3):
    job = _job(db_session, _resume(db_session))
    job_repo.set_uploaded_file(db_session, job, "resume", "jobs/user-1/x/resume/1-cv.pdf")
    chat_repo.add_job_message(db_session, job.id, "user", "hello")
    job_id = job.id
    fake_s3.fail_delete = True

    resp = db_client.delete(f"/api/jobs/{job_id}")
    assert resp.status_code == 200
    assert db_session.query(JobApplication).filter(JobApplication.id == job_id).count() == 0
    assert db_session.query(ChatMessage).filter(ChatMessage.job_id == job_id).count() == 0
    assert db_session.query(ResumeSuggestion).filter(ResumeSuggestion.job_id == job_id).count() == 0
    assert db_session.query(JobResumeUsed).filter(JobResumeUsed.job_id == job_id).count() == 0


def test_job_files_lists_signed_urls(db_client, db_session, fake_s3):
    job = _job(db_session, _resume(db_session))
    job_repo.set_uploaded_file(db_session, job, "coverLetter", "jobs/user-1/j/coverLetter/1-cl.pdf")

    resp = db_client.get(f"/api/jobs/{job.id}/files")
    assert resp.status_code == 200
    files = resp.json()["files"]
    assert "resume" not in files
    assert files["coverLetter"]["key"] == "jobs/user-1/j/coverLetter/1-cl.pdf"
    assert files["coverLetter"]["url"].endswith("?expires=3600")


def test_job_file_download_redirects_to_inline_signed_url(db_client, db_session, fake_s3):
    job = _job(db_session, _resume(db_session))
    job_repo.set_uploaded_file(db_session, job, "resume", "jobs/user-1/j/resume/1-cv.pdf")

    resp = db_client.get(f"/api/jobs/{job.id}/files/resume", follow_redirects=False)
    assert resp.status_code == 307
    assert resp.headers["location"] == "https://signed.example/jobs/user-1/j/resume/1-cv.pdf?expires=3600&inline=1"


def test_job_file_download_bad_type_and_missing_file(db_client, db_session, fake_s3):
    job = _job(db_session, _resume(db_session))
    assert db_client.get(f"/api/jobs/{job.id}/files/portfolio", follow_redirects=False).status_code == 400
    assert db_client.get(f"/api/jobs/{job.id}/files/coverLetter", follow_redirects=False).status_code == 404


def test_upload_job_file_replaces_previous_object(db_client, db_session, fake_s3):
    job = _job(db_session, _resume(db_session))
    job_repo.set_uploaded_file(db_session, job, "resume", "jobs/user-1/old.pdf")

    resp = db_client.post(
        f"/api/jobs/{job.id}/upload",
        files={"file": ("cv final.pdf", MINIMAL_PDF, "application/pdf")},
        data={"type": "resume"},
    )
    assert resp.status_code == 200
    key = resp.json()["key"]
    assert key.startswith(f"jobs/user-1/{job.id}/resume/")
    assert key.endswith("-cv_final.pdf")
    assert fake_s3.deleted == ["jobs/user-1/old.pdf"]
    assert fake_s3.objects[key] == MINIMAL_PDF
    assert resp.json()["job"]["uploadedResumeUrl"] == key


def test_upload_job_file_rejects_non_pdf(db_client, db_session, fake_s3):
    job = _job(db_session, _resume(db_session))
    resp = db_client.post(
        f"/api/jobs/{job.id}/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        data={"type": "resume"},
    )
    assert resp.status_code == 400
    assert fake_s3.objects == {}


def test_match_score_requires_description_and_resume_text(db_client, db_session):
    job = _job(db_session, _resume(db_session), job_description=None)
    resp = db_client.post(f"/api/jobs/{job.id}/match-score")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Job description is required to calculate match score"

    job2 = _job(db_session, _resume(db_session, name="Scanned", text=None))
    resp = db_client.post(f"/api/jobs/{job2.id}/match-score")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Resume text not available for analysis"


def test_match_score_upserts_suggestion(monkeypatch, db_client, db_session):
    job = _job(db_session, _resume(db_session))
    analysis = {
        "matchScore": 82,
        "missingItems": ["Kubernetes"],
        "skillsMatched": ["Python", "AWS"],
        "suggestedBullets": ["Cut p99 latency by 40%"],
        "improvedSummary": "Backend engineer focused on AWS.",
        "relevantExperience": ["Platform team at Foo"],
        "improvements": [{"section": "Skills", "suggestion": "Add Kubernetes"}],
    }
    monkeypatch.setattr(jobs_mod, "analyze_resume_against_job", lambda resume, jd: analysis)

    resp = db_client.post(f"/api/jobs/{job.id}/match-score")
    assert resp.status_code == 200
    body = resp.json()
    assert body["analysis"]["missingItems"] == ["Kubernetes"]
    assert body["suggestion"]["matchScore"] == 82
    assert body["suggestion"]["atsKeywords"] == ["Python", "AWS"]
    assert db_session.query(ResumeSuggestion).filter(ResumeSuggestion.job_id == job.id).count() == 1


def test_match_score_returns_503_when_llm_disabled(monkeypatch, db_client, db_session):
    job = _job(db_session, _resume(db_session))

    def _disabled(resume, jd):
        raise LLMDisabledError("off")

    monkeypatch.setattr(jobs_mod, "analyze_resume_against_job", _disabled)
    resp = db_client.post(f"/api/jobs/{job.id}/match-score")
    assert resp.status_code == 503


def test_job_chat_user_message_gets_assistant_reply(monkeypatch, db_client, db_session):
    job = _job(db_session, _resume(db_session))
    seen = {}

    def _reply(job_, resume_text, history, message):
        seen["resume_text"] = resume_text
        seen["history"] = list(history)
        return "Focus on your AWS projects."

    monkeypatch.setattr(jobs_mod, "job_chat_reply", _reply)
    resp = db_client.post(f"/api/jobs/{job.id}/chat", json={"message": "Any tips?"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["userMessage"]["role"] == "user"
    assert body["assistantMessage"]["message"] == "Focus on your AWS projects."
    assert seen["resume_text"] == "Python engineer with AWS experience"
    assert seen["history"] == []

    resp = db_client.get(f"/api/jobs/{job.id}/chat")
    assert sorted(m["role"] for m in resp.json()["messages"]) == ["assistant", "user"]


def test_job_chat_assistant_message_is_stored_verbatim(monkeypatch, db_client, db_session):
    job = _job(db_session, _resume(db_session))
    monkeypatch.setattr(
        jobs_mod, "job_chat_reply", lambda *a: (_ for _ in ()).throw(AssertionError("must not call LLM"))
    )
    resp = db_client.post(f"/api/jobs/{job.id}/chat", json={"message": "Saved note", "role": "assistant"})
    assert resp.status_code == 201
    assert resp.json()["message"]["role"] == "assistant"


def test_job_chat_sends_only_recent_history(monkeypatch, db_client, db_session):
    job = _job(db_session, _resume(db_session))
    for i in range(14):
        chat_repo.add_job_message(db_session, job.id, "user", f"turn {i}")
    seen = {}

    def _reply(job_, resume_text, history, message):
        seen["history"] = list(history)
        return "ok"

    monkeypatch.setattr(jobs_mod, "job_chat_reply", _reply)
    resp = db_client.post(f"/api/jobs/{job.id}/chat", json={"message": "next"})
    assert resp.status_code == 201
    assert len(seen["history"]) == 10


def test_job_chat_llm_failure_stores_nothing(monkeypatch, db_client, db_session):
    job = _job(db_session, _resume(db_session))

    def _disabled(*args):
        raise LLMDisabledError("Bedrock LLM is disabled")

    def _broken(*args):
        raise RuntimeError("throttled")

    monkeypatch.setattr(jobs_mod, "job_chat_reply", _disabled)
    assert db_client.post(f"/api/jobs/{job.id}/chat", json={"message": "hi"}).status_code == 503
    monkeypatch.setattr(jobs_mod, "job_chat_reply", _broken)
    assert db_client.post(f"/api/jobs/{job.id}/chat", json={"message": "hi"}).status_code == 500
    assert db_session.query(ChatMessage).filter(ChatMessage.job_id == job.id).count() == 0


def test_job_chat_rejects_empty_message(db_client, db_session):
    job = _job(db_session, _resume(db_session))
    resp = db_client.post(f"/api/jobs/{job.id}/chat", json={"message": ""})
    assert resp.status_code == 400
    assert "message" in resp.json()["fieldErrors"]


def test_parse_url_success(monkeypatch, client):
    parsed = {
        "jobTitle": "Backend Engineer",
        "company": "Acme",
        "location": "Remote",
        "jobDescription": "Build APIs",
        "responsibilities": "- Own services",
        "requirements": "- Python",
    }
    monkeypatch.setattr(jobs_mod, "parse_job_url", lambda url: parsed)
    resp = client.post("/api/jobs/parse-url", json={"url": "https://jobs.example.com/42"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "job": parsed}


def test_parse_url_fetch_failure_is_400(monkeypatch, client):
    def _fail(url):
        raise JobPageFetchError("timeout")

    monkeypatch.setattr(jobs_mod, "parse_job_url", _fail)
    resp = client.post("/api/jobs/parse-url", json={"url": "https://jobs.example.com/42"})
    assert resp.status_code == 400


def test_parse_url_parse_failure_is_500(monkeypatch, client):
    monkeypatch.setattr(jobs_mod, "parse_job_url", lambda url: (_ for _ in ()).throw(ValueError("no json")))
    resp = client.post("/api/jobs/parse-url", json={"url": "https://jobs.example.com/42"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Failed to parse job posting"


def test_list_jobs_returns_500_on_repo_failure(monkeypatch, client):
    monkeypatch.setattr(
        job_repo, "list_for_user", lambda db, uid, **kwargs: (_ for _ in ()).throw(RuntimeError("db"))
    )
    resp = client.get("/api/jobs")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Failed to fetch jobs"}
