from core.context import ProjectContext
from core.ecosystem import detect_language_ecosystem, dispatch_rules
from models.framework import LanguageEcosystem
from rules.rules_loader import load_rules
from scan.project_index import ProjectIndex


def _detect(make_project, files, **kwargs):
    context = ProjectContext.from_index(ProjectIndex.build(make_project(files)))
    return detect_language_ecosystem(context, **kwargs)


def test_python_project(make_project):
    ecosystem, scores = _detect(make_project, {"app.py": "", "models.py": "", "requirements.txt": "flask"})
    assert ecosystem == LanguageEcosystem.PYTHON
    assert scores == {LanguageEcosystem.PYTHON: 20}


def test_tsconfig_turns_javascript_into_typescript(make_project):
    ecosystem, scores = _detect(make_project, {
        "tsconfig.json": "{}",
        "src/index.ts": "",
        "webpack.config.js": "",
        "legacy.js": "",
    })
    assert ecosystem == LanguageEcosystem.TYPESCRIPT
    assert LanguageEcosystem.JAVASCRIPT not in scores


def test_deno_project_scores_typescript_as_deno(make_project):
    ecosystem, _ = _detect(make_project, {"deno.json": "{}", "main.ts": "", "lib.js": ""})
    assert ecosystem == LanguageEcosystem.DENO


def test_tie_broken_alphabetically(make_project):
    ecosystem, scores = _detect(make_project, {"next.config.js": "", "app/layout.tsx": ""})
    assert scores[LanguageEcosystem.JAVASCRIPT] == scores[LanguageEcosystem.TYPESCRIPT]
    assert ecosystem == LanguageEcosystem.JAVASCRIPT


def test_empty_project_is_mixed(make_project):
    ecosystem, scores = _detect(make_project, {"README.md": "# hello"})
    assert ecosystem == LanguageEcosystem.MIXED
    assert scores == {}


def test_two_significant_families_make_mixed(make_project):
    ecosystem, _ = _detect(make_project, {"backend/app.py": "", "frontend/src/App.jsx": ""})
    assert ecosystem == LanguageEcosystem.MIXED


def test_minor_second_language_does_not_make_mixed(make_project):
    files = {f"pkg/module_{i}.py": "" for i in range(5)}
    files["scripts/build.js"] = ""
    ecosystem, _ = _detect(make_project, files)
    assert ecosystem == LanguageEcosystem.PYTHON


def test_mixed_share_is_configurable(make_project):
    files = {f"pkg/module_{i}.py": "" for i in range(5)}
    files["scripts/build.js"] = ""
    ecosystem, _ = _detect(make_project, files, mixed_share=0.1)
    assert ecosystem == LanguageEcosystem.MIXED


def test_rust_project(make_project):
    ecosystem, _ = _detect(make_project, {"Cargo.toml": "[package]", "src/main.rs": "fn main() {}"})
    assert ecosystem == LanguageEcosystem.RUST


def test_dispatch_rules():
    rules = load_rules()

    def names(ecosystem):
        return {r.name for r in dispatch_rules(rules, ecosystem)}

    assert names(LanguageEcosystem.PYTHON) == {"Flask", "FastAPI", "Django"}
    assert names(LanguageEcosystem.JAVA) == {"SpringBoot"}
    assert names(LanguageEcosystem.DENO) == {"Danet"}
    assert names(LanguageEcosystem.JAVASCRIPT) == {"React", "NextJS", "Express", "Vue"}
    assert names(LanguageEcosystem.TYPESCRIPT) == {"React", "NextJS", "Express", "Vue", "NestJS", "Angular"}
    assert names(LanguageEcosystem.RUST) == set()
    assert names(LanguageEcosystem.GO) == set()
    assert len(dispatch_rules(rules, LanguageEcosystem.MIXED)) == len(rules)
