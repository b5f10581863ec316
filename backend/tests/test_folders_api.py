"""Tests for the folder API endpoints."""

import httpx

from essdesign.services.storage import LocalBlobStore
from essdesign.api.deps import get_blob_store
from essdesign.main import app
from tests.conftest import make_document, make_folder, pdf_upload


def _create(client, name, parent_folder_id=None):
    body = {"name": name}
    if parent_folder_id:
        body["parent_folder_id"] = parent_folder_id
    resp = client.post("/api/folders", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestTree:

    def test_list_roots_is_light(self, client, db):
        acme = make_folder(db, "Acme")
        make_folder(db, "Tower", acme.id)
        make_document(db, acme.id)

        resp = client.get("/api/folders")
        assert resp.status_code == 200
        roots = resp.json()
        assert [r["name"] for r in roots] == ["Acme"]
        assert roots[0]["shape"] == "light"
        assert [s["name"] for s in roots[0]["sub_folders"]] == ["Tower"]
        assert "documents" not in roots[0]

    def test_get_folder_is_full(self, client, db):
        acme = make_folder(db, "Acme")
        make_folder(db, "Tower", acme.id)
        make_document(db, acme.id, revision_number="02")

        body = client.get(f"/api/folders/{acme.id}").json()
        assert body["shape"] == "full"
        assert [s["name"] for s in body["sub_folders"]] == ["Tower"]
        assert [d["revision_number"] for d in body["documents"]] == ["02"]

    def test_children_is_light(self, client, db):
        acme = make_folder(db, "Acme")
        make_document(db, acme.id)
        body = client.get(f"/api/folders/{acme.id}/children").json()
        assert body["shape"] == "light"
        assert "documents" not in body

    def test_unknown_folder_404(self, client):
        resp = client.get("/api/folders/missing")
        assert resp.status_code == 404
        assert resp.json()["error"] == "FOLDER_NOT_FOUND"

    def test_breadcrumbs(self, client, db):
        acme = make_folder(db, "Acme")
        tower = make_folder(db, "Tower", acme.id)
        north = make_folder(db, "North", tower.id)

        resp = client.get(f"/api/folders/{north.id}/breadcrumbs")
        assert resp.status_code == 200
        assert [b["name"] for b in resp.json()] == ["Acme", "Tower", "North"]

    def test_breadcrumbs_unknown_folder_404(self, client):
        assert client.get("/api/folders/missing/breadcrumbs").status_code == 404


class TestFolderWrites:

    def test_create_then_read(self, client):
        acme = _create(client, "Acme")
        assert acme["shape"] == "full"
        tower = _create(client, "Tower", acme["id"])

        body = client.get(f"/api/folders/{acme['id']}").json()
        assert [s["id"] for s in body["sub_folders"]] == [tower["id"]]

    def test_create_blank_name_400(self, client):
        resp = client.post("/api/folders", json={"name": "   "})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["message"] == "Folder name is required"

    def test_create_missing_body_400(self, client):
        resp = client.post("/api/folders", json={})
        assert resp.status_code == 400

    def test_create_unknown_parent_404(self, client):
        resp = client.post("/api/folders", json={"name": "Orphan", "parent_folder_id": "nope"})
        assert resp.status_code == 404

    def test_rename_visible_in_parent(self, client):
        acme = _create(client, "Acme")
        tower = _create(client, "Tower", acme["id"])
        client.get(f"/api/folders/{acme['id']}")

        resp = client.put(f"/api/folders/{tower['id']}/rename", json={"new_name": " Spire "})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Spire"

        body = client.get(f"/api/folders/{acme['id']}").json()
        assert [s["name"] for s in body["sub_folders"]] == ["Spire"]

    def test_rename_blank_400(self, client):
        acme = _create(client, "Acme")
        resp = client.put(f"/api/folders/{acme['id']}/rename", json={"new_name": ""})
        assert resp.status_code == 400

    def test_delete_cascades(self, client, blob_store):
        acme = _create(client, "Acme")
        tower = _create(client, "Tower", acme["id"])
        client.get(f"/api/folders/{tower['id']}")

        resp = client.delete(f"/api/folders/{acme['id']}")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Folder deleted"
        assert client.get(f"/api/folders/{tower['id']}").status_code == 404
        assert client.get("/api/folders").json() == []

    def test_delete_unknown_404(self, client):
        assert client.delete("/api/folders/missing").status_code == 404


class TestSearch:

    def test_search_returns_paths(self, client, db):
        acme = make_folder(db, "Acme")
        make_folder(db, "Tower Block", acme.id)

        resp = client.get("/api/folders/search", params={"q": "tower"})
        assert resp.status_code == 200
        results = resp.json()
        assert [r["path"] for r in results] == ["Acme / Tower Block"]

    def test_short_query_400(self, client):
        resp = client.get("/api/folders/search", params={"q": " a "})
        assert resp.status_code == 400
        assert resp.json()["error"] == "VALIDATION_ERROR"

    def test_missing_query_400(self, client):
        assert client.get("/api/folders/search").status_code == 400


class TestUpload:

    def test_upload_both_files(self, client, db, blob_store):
        acme = make_folder(db, "Acme")

        resp = client.post(
            "/api/folders/documents",
            data={"folder_id": acme.id, "revision_number": "01", "description": "First issue"},
            files={
                "ess_design_issue": pdf_upload("ga.pdf"),
                "third_party_design": pdf_upload("tp.pdf"),
            },
        )
        assert resp.status_code == 201, resp.text
        document_id = resp.json()["id"]

        body = client.get(f"/api/folders/{acme.id}").json()
        assert [d["id"] for d in body["documents"]] == [document_id]
        assert body["documents"][0]["ess_design_issue_name"] == "ga.pdf"
        assert len(blob_store.files) == 2

    def test_upload_without_files_400(self, client, db, blob_store):
        acme = make_folder(db, "Acme")
        resp = client.post(
            "/api/folders/documents",
            data={"folder_id": acme.id, "revision_number": "01"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "At least one file required"
        assert blob_store.files == {}

    def test_upload_without_folder_400(self, client):
        resp = client.post(
            "/api/folders/documents",
            data={"revision_number": "01"},
            files={"ess_design_issue": pdf_upload()},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Folder ID required"

    def test_upload_unknown_folder_404(self, client, blob_store):
        resp = client.post(
            "/api/folders/documents",
            data={"folder_id": "missing", "revision_number": "01"},
            files={"ess_design_issue": pdf_upload()},
        )
        assert resp.status_code == 404
        assert blob_store.files == {}

    def test_notification_scheduled_on_success(self, client, db, notifier):
        acme = make_folder(db, "Acme")
        tower = make_folder(db, "Tower", acme.id)

        resp = client.post(
            "/api/folders/documents",
            data={
                "folder_id": tower.id,
                "revision_number": "04",
                "notify_emails": ["pm@example.com, eng@example.com", "qa@example.com"],
            },
            files={"ess_design_issue": pdf_upload()},
        )
        assert resp.status_code == 201

        assert len(notifier.sent) == 1
        notification = notifier.sent[0]
        assert notification.recipients == ["pm@example.com", "eng@example.com", "qa@example.com"]
        assert notification.document_name == "Tower"
        assert notification.revision_number == "04"
        assert notification.hierarchy.client == "Acme"
        assert notification.hierarchy.project == "Tower"

    def test_no_notification_without_recipients(self, client, db, notifier):
        acme = make_folder(db, "Acme")
        client.post(
            "/api/folders/documents",
            data={"folder_id": acme.id, "revision_number": "01"},
            files={"ess_design_issue": pdf_upload()},
        )
        assert notifier.sent == []

    def test_partial_upload_502_without_notification(self, client, db, blob_store, notifier):
        acme = make_folder(db, "Acme")
        blob_store.fail_on.append("third_party_")

        resp = client.post(
            "/api/folders/documents",
            data={"folder_id": acme.id, "revision_number": "01", "notify_emails": ["pm@example.com"]},
            files={
                "ess_design_issue": pdf_upload("ga.pdf"),
                "third_party_design": pdf_upload("tp.pdf"),
            },
        )
        assert resp.status_code == 502
        body = resp.json()
        assert body["error"] == "PARTIAL_UPLOAD"
        assert body["details"]["failed_variants"] == ["thirdparty"]
        assert notifier.sent == []

        documents = client.get(f"/api/folders/{acme.id}").json()["documents"]
        assert [d["id"] for d in documents] == [body["details"]["document_id"]]
        assert documents[0]["third_party_design_path"] is None

    def test_all_uploads_failing_502(self, client, db, blob_store):
        acme = make_folder(db, "Acme")
        blob_store.fail_on.append("documents/")

        resp = client.post(
            "/api/folders/documents",
            data={"folder_id": acme.id, "revision_number": "01"},
            files={"ess_design_issue": pdf_upload()},
        )
        assert resp.status_code == 502
        assert resp.json()["error"] == "STORAGE_ERROR"
        assert client.get(f"/api/folders/{acme.id}").json()["documents"] == []


class TestDocumentWrites:

    def test_add_third_party_file(self, client, db, blob_store):
        acme = make_folder(db, "Acme")
        document = make_document(db, acme.id)

        resp = client.put(
            f"/api/folders/documents/{document.id}/files/thirdparty",
            files={"file": pdf_upload("tp.pdf")},
        )
        assert resp.status_code == 200
        assert resp.json()["third_party_design_name"] == "tp.pdf"
        assert any(path.endswith("third_party_tp.pdf") for path in blob_store.files)

    def test_add_file_unknown_variant_400(self, client, db):
        acme = make_folder(db, "Acme")
        document = make_document(db, acme.id)
        resp = client.put(
            f"/api/folders/documents/{document.id}/files/cad",
            files={"file": pdf_upload()},
        )
        assert resp.status_code == 400

    def test_update_revision(self, client, db):
        acme = make_folder(db, "Acme")
        document = make_document(db, acme.id)
        client.get(f"/api/folders/{acme.id}")

        resp = client.put(
            f"/api/folders/documents/{document.id}/revision",
            json={"new_revision_number": "B"},
        )
        assert resp.status_code == 200
        docs = client.get(f"/api/folders/{acme.id}").json()["documents"]
        assert docs[0]["revision_number"] == "B"

    def test_update_revision_blank_400(self, client, db):
        acme = make_folder(db, "Acme")
        document = make_document(db, acme.id)
        resp = client.put(
            f"/api/folders/documents/{document.id}/revision",
            json={"new_revision_number": " "},
        )
        assert resp.status_code == 400

    def test_delete_document(self, client, db, blob_store):
        acme = make_folder(db, "Acme")
        document = make_document(db, acme.id, ess_path="documents/a/ess_x.pdf")

        resp = client.delete(f"/api/folders/documents/{document.id}")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Document deleted"
        assert client.get(f"/api/folders/{acme.id}").json()["documents"] == []
        assert blob_store.deleted == ["documents/a/ess_x.pdf"]

    def test_delete_unknown_document_404(self, client):
        resp = client.delete("/api/folders/documents/missing")
        assert resp.status_code == 404
        assert resp.json()["error"] == "DOCUMENT_NOT_FOUND"


class TestDownload:

    def test_link(self, client, db):
        acme = make_folder(db, "Acme")
        document = make_document(db, acme.id, ess_path="documents/a/ess_x.pdf")

        resp = client.get(f"/api/folders/documents/{document.id}/download/ess")
        assert resp.status_code == 200
        assert resp.json() == {
            "url": "https://blobs.test/documents/a/ess_x.pdf?ttl=3600",
            "file_name": "ess_x.pdf",
        }

    def test_redirect(self, client, db):
        acme = make_folder(db, "Acme")
        document = make_document(db, acme.id, ess_path="documents/a/ess_x.pdf")

        resp = client.get(
            f"/api/folders/documents/{document.id}/download/ess",
            params={"redirect": "true"},
            follow_redirects=False,
        )
        assert resp.status_code == 307
        assert resp.headers["location"] == "https://blobs.test/documents/a/ess_x.pdf?ttl=3600"

    def test_missing_variant_404(self, client, db):
        acme = make_folder(db, "Acme")
        document = make_document(db, acme.id)
        resp = client.get(f"/api/folders/documents/{document.id}/download/thirdparty")
        assert resp.status_code == 404
        assert resp.json()["error"] == "FILE_NOT_FOUND"

    def test_unknown_variant_400(self, client, db):
        acme = make_folder(db, "Acme")
        document = make_document(db, acme.id)
        assert client.get(f"/api/folders/documents/{document.id}/download/dwg").status_code == 400


class TestLocalStorageRoute:

    def _local(self, client, tmp_path):
        store = LocalBlobStore(str(tmp_path), "design-pdfs", "signing-key", "http://testserver")
        store.ensure_bucket()
        app.dependency_overrides[get_blob_store] = lambda: store
        return store

    def test_serves_signed_file(self, client, tmp_path):
        store = self._local(client, tmp_path)
        store.upload(b"%PDF-1.4 body", "documents/f/d/ess_a.pdf")
        url = httpx.URL(store.create_signed_url("documents/f/d/ess_a.pdf", 60))

        resp = client.get(url.path, params=dict(url.params))
        assert resp.status_code == 200
        assert resp.content == b"%PDF-1.4 body"
        assert resp.headers["content-type"] == "application/pdf"

    def test_bad_signature_403(self, client, tmp_path):
        store = self._local(client, tmp_path)
        store.upload(b"%PDF", "documents/a.pdf")
        url = httpx.URL(store.create_signed_url("documents/a.pdf", 60))
        params = dict(url.params)
        params["signature"] = "0" * 64

        assert client.get(url.path, params=params).status_code == 403

    def test_not_served_for_other_backends(self, client):
        resp = client.get("/api/storage/documents/a.pdf", params={"expires": 1, "signature": "x"})
        assert resp.status_code == 404
