"""Tests for manifest version extraction utilities."""
from core.version_utils import (
    extract_version,
    extract_version_from_deno,
    extract_version_from_gradle,
    extract_version_from_maven,
    extract_version_from_package_json,
    extract_version_from_pyproject,
    extract_version_from_requirements,
)
from scan.project_index import ProjectIndex


def test_requirements_pinned_and_ranges():
    content = "# web\nFlask==2.3.2\nfastapi>=0.100.0 ; python_version > '3.8'\nDjango\n"
    assert extract_version_from_requirements(content, "flask") == "2.3.2"
    assert extract_version_from_requirements(content, "fastapi") == ">=0.100.0"
    assert extract_version_from_requirements(content, "django") is None
    assert extract_version_from_requirements(content, "requests") is None


def test_requirements_normalizes_names_and_extras():
    content = "uvicorn[standard]==0.23.2\nDjango_Rest-Framework==3.14\n"
    assert extract_version_from_requirements(content, "uvicorn") == "0.23.2"
    assert extract_version_from_requirements(content, "django-rest-framework") == "3.14"


def test_pyproject_pep621_and_poetry():
    pep621 = '[project]\ndependencies = [\n  "fastapi>=0.110",\n  "flask==3.0.0",\n]\n'
    assert extract_version_from_pyproject(pep621, "flask") == "3.0.0"
    assert extract_version_from_pyproject(pep621, "fastapi") == ">=0.110"

    poetry = '[tool.poetry.dependencies]\npython = "^3.11"\ndjango = "^4.2"\nflask = {version = "^2.0", extras = ["async"]}\n'
    assert extract_version_from_pyproject(poetry, "django") == "^4.2"
    assert extract_version_from_pyproject(poetry, "flask") == "^2.0"
    assert extract_version_from_pyproject(poetry, "fastapi") is None


def test_package_json_sections():
    content = '{"dependencies": {"react": "^18.2.0"}, "devDependencies": {"@nestjs/core": "10.0.0"}}'
    assert extract_version_from_package_json(content, "react") == "^18.2.0"
    assert extract_version_from_package_json(content, "@nestjs/core") == "10.0.0"
    assert extract_version_from_package_json(content, "vue") is None


def test_package_json_malformed_falls_back_to_substring_scan():
    content = '{"dependencies": {"next": "14.1.0",}'  # trailing comma, invalid JSON
    assert extract_version_from_package_json(content, "next") == "14.1.0"
    assert extract_version_from_package_json("not json at all", "next") is None


def test_maven_parent_version():
    content = """
    <parent>
        <groupId>org.springframework.boot</groupId>
        <artifactId>spring-boot-starter-parent</artifactId>
        <version>3.1.5</version>
    </parent>
    """
    assert extract_version_from_maven(content, "spring-boot") == "3.1.5"


def test_maven_property_reference_is_ignored():
    content = "<artifactId>spring-boot-starter-web</artifactId><version>${spring.version}</version>"
    assert extract_version_from_maven(content, "spring-boot") is None


def test_gradle_plugin_version():
    groovy = "plugins {\n  id 'org.springframework.boot' version '3.2.1'\n}"
    kotlin = 'plugins {\n  id("org.springframework.boot") version "3.1.0"\n}'
    assert extract_version_from_gradle(groovy, "org.springframework.boot") == "3.2.1"
    assert extract_version_from_gradle(kotlin, "org.springframework.boot") == "3.1.0"
    assert extract_version_from_gradle("plugins { id 'java' }", "org.springframework.boot") is None


def test_deno_specifiers():
    jsr = '{"imports": {"@danet/core": "jsr:@danet/core@2.3.0"}}'
    url = '{"imports": {"danet/": "https://deno.land/x/danet@v1.7.4/"}}'
    assert extract_version_from_deno(jsr, "@danet/core") == "2.3.0"
    assert extract_version_from_deno(url, "danet") == "1.7.4"
    assert extract_version_from_deno('{"tasks": {}}', "danet") is None


def test_extract_version_reads_manifest_from_index(make_project):
    root = make_project({"requirements.txt": "flask==2.3.2\n", "build.gradle.kts": 'id("org.springframework.boot") version "3.1.0"'})
    index = ProjectIndex.build(root)

    assert extract_version(index, "requirements", "flask") == "2.3.2"
    assert extract_version(index, "gradle", "org.springframework.boot") == "3.1.0"
    assert extract_version(index, "package_json", "react") is None
    assert extract_version(index, "cargo", "tokio") is None
