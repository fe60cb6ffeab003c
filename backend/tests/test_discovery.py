from conftest import write_file

from codeindex.indexing.discovery import (
    compile_ignore_pattern,
    is_blocked,
    is_indexable,
    iter_source_files,
    load_ignore_patterns,
)

JAVA = "public class A {}\n"


def test_discovers_source_files_sorted(tmp_path):
    write_file(tmp_path, "src/b/B.java", JAVA)
    write_file(tmp_path, "src/a/A.java", JAVA)
    write_file(tmp_path, "web/app.ts", "export const x = 1;\n")
    write_file(tmp_path, "README.md", "# readme\n")
    assert iter_source_files(tmp_path) == ["src/a/A.java", "src/b/B.java", "web/app.ts"]


def test_skips_hidden_and_vendor_directories(tmp_path):
    write_file(tmp_path, "src/A.java", JAVA)
    write_file(tmp_path, "node_modules/lib/index.js", "x\n")
    write_file(tmp_path, ".cache/gen.ts", "x\n")
    write_file(tmp_path, "target/classes/Gen.java", JAVA)
    write_file(tmp_path, "src/.Hidden.java", JAVA)
    assert iter_source_files(tmp_path) == ["src/A.java"]


def test_skips_secret_risk_files(tmp_path):
    write_file(tmp_path, "src/A.java", JAVA)
    write_file(tmp_path, "web/vite.config.ts", "export default {}\n")
    write_file(tmp_path, "web/secrets.ts", "x\n")
    write_file(tmp_path, "web/credentials.ts", "x\n")
    write_file(tmp_path, "src/main/resources/Seed.java", JAVA)
    write_file(tmp_path, "deploy/k8s/job.py", "x = 1\n")
    assert iter_source_files(tmp_path) == ["src/A.java"]


def test_ignore_file_patterns(tmp_path):
    write_file(tmp_path, ".tibignore", "# generated code\ngenerated\n*.sql\n\nweb/legacy_*.ts\n")
    write_file(tmp_path, "src/A.java", JAVA)
    write_file(tmp_path, "generated/Gen.java", JAVA)
    write_file(tmp_path, "db/schema.sql", "CREATE TABLE t (id INT);\n")
    write_file(tmp_path, "web/legacy_cart.ts", "x\n")
    write_file(tmp_path, "web/cart.ts", "x\n")
    assert iter_source_files(tmp_path) == ["src/A.java", "web/cart.ts"]


def test_skips_large_and_binary_files(tmp_path):
    write_file(tmp_path, "src/A.java", JAVA)
    write_file(tmp_path, "src/Big.java", "// filler\n" * 300)
    (tmp_path / "src" / "Bin.java").write_bytes(b"class\x00Bin {}")
    assert iter_source_files(tmp_path, max_file_size_kb=1) == ["src/A.java"]


def test_compile_ignore_pattern():
    pattern = compile_ignore_pattern("src/*.java")
    assert pattern.match("src/A.java")
    assert not pattern.match("lib/src/A.java")
    assert compile_ignore_pattern("a?c").match("abc")
    assert compile_ignore_pattern("a.c").match("a.c")
    assert not compile_ignore_pattern("a.c").match("abc")


def test_missing_ignore_file(tmp_path):
    assert load_ignore_patterns(tmp_path) == []


def test_is_blocked():
    assert is_blocked(".env")
    assert is_blocked("app/.env.production")
    assert is_blocked("deploy/docker-compose.prod.yml")
    assert is_blocked("src/config/db.ts")
    assert not is_blocked("src/configuration/Db.java")
    assert not is_blocked("src/OrderService.java")


def test_is_indexable_applies_same_rules(tmp_path):
    write_file(tmp_path, ".tibignore", "generated\n")
    write_file(tmp_path, "src/A.java", JAVA)
    write_file(tmp_path, "generated/Gen.java", JAVA)
    write_file(tmp_path, "node_modules/x.js", "x\n")
    patterns = load_ignore_patterns(tmp_path)
    assert is_indexable(tmp_path, "src/A.java", patterns)
    assert not is_indexable(tmp_path, "generated/Gen.java", patterns)
    assert not is_indexable(tmp_path, "node_modules/x.js", patterns)
    assert not is_indexable(tmp_path, "src/Missing.java", patterns)
    assert not is_indexable(tmp_path, "notes.txt", patterns)
