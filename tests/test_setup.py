import create


def test_storage_setup_creates_missing_buckets(app, tmp_path, capsys):
    (tmp_path / "storage" / "resumes").rmdir()
    app.config["DOCUMENTS_BUCKET"] = "docs-v2"

    create.main(app)

    assert (tmp_path / "storage" / "resumes").is_dir()
    assert (tmp_path / "storage" / "docs-v2").is_dir()
    assert "Storage setup complete." in capsys.readouterr().out
