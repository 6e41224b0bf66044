from dataclasses import dataclass

from scan.project_index import ProjectIndex

DENO_CONFIG_FILES = ("deno.json", "deno.jsonc")
DENO_URL_IMPORT = "https://deno.land/"
SCRIPT_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx")
NEXT_CONFIG_FILES = ("next.config.js", "next.config.mjs", "next.config.ts")
NEXT_IMPORTS = ("from 'next/", 'from "next/', "next/router", "next/navigation")
DANET_IMPORTS = ('from "danet"', "from 'danet'", "@danet/", "deno.land/x/danet")
NESTJS_IMPORTS = ('from "@nestjs/', "from '@nestjs/")

# REST call syntax that marks API communication between tiers
API_PATTERNS = (
    "fetch(",
    "axios.",
    "axios(",
    "HttpClient",
    "@GetMapping",
    "@PostMapping",
    "@RequestMapping",
    "requests.get(",
    "requests.post(",
    "httpx.",
)
API_EXTENSIONS = SCRIPT_EXTENSIONS + (".vue", ".py", ".java")


@dataclass(frozen=True)
class ProjectContext:
    """Immutable facts about a project, derived once from its index."""
    root: str
    index: ProjectIndex
    has_deno_config: bool
    is_deno_project: bool
    has_package_json: bool
    has_tsconfig: bool
    has_nextjs_markers: bool
    has_api_patterns: bool
    has_danet_imports: bool
    has_nestjs_imports: bool

    @classmethod
    def from_index(cls, index: ProjectIndex) -> "ProjectContext":
        has_deno_config = any(index.has_file(name) for name in DENO_CONFIG_FILES)
        is_deno_project = has_deno_config or index.has_patterns_in_files(
            (".ts", ".tsx", ".js"), [DENO_URL_IMPORT]
        )
        package_json = index.read_file("package.json") or ""
        has_nextjs_markers = (
            any(index.has_file(name) for name in NEXT_CONFIG_FILES)
            or '"next"' in package_json
            or index.has_patterns_in_files(SCRIPT_EXTENSIONS, NEXT_IMPORTS)
        )
        return cls(
            root=index.root,
            index=index,
            has_deno_config=has_deno_config,
            is_deno_project=is_deno_project,
            has_package_json=index.has_file("package.json"),
            has_tsconfig=index.has_file("tsconfig.json"),
            has_nextjs_markers=has_nextjs_markers,
            has_api_patterns=index.has_patterns_in_files(API_EXTENSIONS, API_PATTERNS),
            has_danet_imports=index.has_patterns_in_files(SCRIPT_EXTENSIONS, DANET_IMPORTS),
            has_nestjs_imports=index.has_patterns_in_files(SCRIPT_EXTENSIONS, NESTJS_IMPORTS),
        )
