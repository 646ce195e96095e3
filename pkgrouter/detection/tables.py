"""Detection tables for every supported ecosystem.

The tables are an explicit configuration object handed to the matchers at
construction time. ``DetectionTables.default()`` holds the built-in tables;
``DetectionTables.load()`` reads a JSON override with the same shape.

Name patterns are ordered from most to least specific and are anchored, so a
pattern only matches a whole package name.
"""

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from pkgrouter.config import ConfigError


class ManagerInfo(BaseModel):
    """Display metadata for one ecosystem."""

    name: str = Field(description="Human-readable manager name")
    description: str = Field(default="", description="What the registry hosts")
    priority: int = Field(default=100, description="Listing order (lower first)")


class DetectionTables(BaseModel):
    """Per-ecosystem pattern, keyword and framework tables."""

    managers: dict[str, ManagerInfo] = Field(default_factory=dict)
    name_patterns: dict[str, list[str]] = Field(default_factory=dict)
    file_extensions: dict[str, list[str]] = Field(default_factory=dict)
    keywords: dict[str, list[str]] = Field(default_factory=dict)
    framework_packages: dict[str, list[str]] = Field(default_factory=dict)
    file_patterns: dict[str, list[str]] = Field(default_factory=dict)
    known_packages: dict[str, list[str]] = Field(default_factory=dict)

    def manager_ids(self) -> list[str]:
        """All ecosystems mentioned anywhere in the tables, in priority order."""
        seen: dict[str, None] = {}
        for table in (
            self.managers,
            self.name_patterns,
            self.file_extensions,
            self.keywords,
            self.framework_packages,
            self.file_patterns,
            self.known_packages,
        ):
            for manager_id in table:
                seen.setdefault(manager_id, None)
        return sorted(
            seen,
            key=lambda m: self.managers[m].priority if m in self.managers else 1000,
        )

    @classmethod
    def default(cls) -> "DetectionTables":
        """Built-in tables for the 15 supported ecosystems."""
        return cls(
            managers=_DEFAULT_MANAGERS,
            name_patterns=_DEFAULT_NAME_PATTERNS,
            file_extensions=_DEFAULT_FILE_EXTENSIONS,
            keywords=_DEFAULT_KEYWORDS,
            framework_packages=_DEFAULT_FRAMEWORKS,
            file_patterns=_DEFAULT_FILE_PATTERNS,
        )

    @classmethod
    def load(cls, path: Path | str) -> "DetectionTables":
        """Load tables from JSON. Missing sections fall back to the defaults.

        Raises:
            ConfigError: If the file is unreadable or does not validate.
        """
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot load detection tables from {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Detection tables in {path} must be a JSON object")

        merged = cls.default().model_dump()
        merged.update(data)
        try:
            return cls.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid detection tables in {path}: {e}") from e


_DEFAULT_MANAGERS: dict[str, ManagerInfo] = {
    "npm": ManagerInfo(name="npm", description="Node.js package registry", priority=1),
    "pip": ManagerInfo(name="pip", description="Python Package Index (PyPI)", priority=2),
    "composer": ManagerInfo(name="Composer", description="PHP packages on Packagist", priority=3),
    "cargo": ManagerInfo(name="Cargo", description="Rust crates on crates.io", priority=4),
    "maven": ManagerInfo(name="Maven", description="Java artifacts on Maven Central", priority=5),
    "nuget": ManagerInfo(name="NuGet", description=".NET packages", priority=6),
    "gem": ManagerInfo(name="RubyGems", description="Ruby gems", priority=7),
    "cocoapods": ManagerInfo(name="CocoaPods", description="iOS/macOS pods", priority=8),
    "conan": ManagerInfo(name="Conan", description="C/C++ packages on ConanCenter", priority=9),
    "cpan": ManagerInfo(name="CPAN", description="Perl modules", priority=10),
    "cran": ManagerInfo(name="CRAN", description="R packages", priority=11),
    "docker_hub": ManagerInfo(name="Docker Hub", description="Container images", priority=12),
    "helm": ManagerInfo(name="Helm", description="Kubernetes charts on Artifact Hub", priority=13),
    "swift": ManagerInfo(name="Swift Package Manager", description="Swift packages", priority=14),
    "vcpkg": ManagerInfo(name="vcpkg", description="C/C++ ports for vcpkg", priority=15),
}

_DEFAULT_NAME_PATTERNS: dict[str, list[str]] = {
    "npm": [
        r"^@[a-z0-9-~][a-z0-9-._~]*/[a-z0-9-~][a-z0-9-._~]*$",
        r"^[a-z0-9-~][a-z0-9-._~]*$",
    ],
    "composer": [
        r"^[a-z0-9]([_.-]?[a-z0-9]+)*/[a-z0-9]([_.-]?[a-z0-9]+)*$",
    ],
    "pip": [
        r"^(?i:[a-z0-9]|[a-z0-9][a-z0-9._-]*[a-z0-9])$",
    ],
    "cargo": [r"^[a-zA-Z][a-zA-Z0-9_-]*$"],
    "maven": [r"^[a-zA-Z0-9._-]+:[a-zA-Z0-9._-]+$"],
    "nuget": [r"^[A-Za-z0-9._-]+$"],
    "gem": [r"^[a-zA-Z0-9._-]+$"],
    "cocoapods": [r"^[a-zA-Z0-9._-]+$"],
    "conan": [r"^[a-zA-Z0-9._-]+$"],
    "cpan": [r"^[A-Za-z0-9:_-]+$"],
    "cran": [r"^[a-zA-Z0-9.]+$"],
    "docker_hub": [
        r"^[a-z0-9]+(?:[._-][a-z0-9]+)*/[a-z0-9]+(?:[._-][a-z0-9]+)*$",
        r"^[a-z0-9]+(?:[._-][a-z0-9]+)*$",
    ],
    "helm": [r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"],
    "swift": [r"^[a-zA-Z0-9._-]+$"],
    "vcpkg": [r"^[a-z0-9-]+$"],
}

_DEFAULT_FILE_EXTENSIONS: dict[str, list[str]] = {
    "npm": [".js", ".ts", ".jsx", ".tsx", ".json", ".mjs", ".cjs"],
    "composer": [".php"],
    "pip": [".py", ".pyw"],
    "cargo": [".rs"],
    "maven": [".java", ".xml"],
    "nuget": [".cs", ".vb", ".fs", ".csproj", ".vbproj", ".fsproj"],
    "gem": [".rb", ".gemspec"],
    "cocoapods": [".swift", ".m", ".h", ".podspec"],
    "conan": [".cpp", ".cc", ".cxx", ".c", ".h", ".hpp"],
    "cpan": [".pl", ".pm", ".t"],
    "cran": [".R", ".r"],
    "docker_hub": [".dockerfile"],
    "helm": [".yaml", ".yml"],
    "swift": [".swift"],
    "vcpkg": [".cpp", ".cc", ".cxx", ".c", ".h", ".hpp"],
}

_DEFAULT_KEYWORDS: dict[str, list[str]] = {
    "npm": ["node", "nodejs", "javascript", "typescript", "react", "vue", "angular",
            "express", "webpack", "babel"],
    "composer": ["php", "laravel", "symfony", "drupal", "wordpress", "zend"],
    "pip": ["python", "django", "flask", "fastapi", "pandas", "numpy", "scipy", "matplotlib"],
    "cargo": ["rust", "rustlang", "tokio", "serde", "actix"],
    "maven": ["java", "maven", "spring", "hibernate", "junit", "gradle"],
    "nuget": ["dotnet", "csharp", "vb.net", "fsharp", "aspnet", "entity", "framework"],
    "gem": ["ruby", "rails", "sinatra", "rspec", "bundler", "jekyll"],
    "cocoapods": ["ios", "macos", "swift", "objective-c", "xcode", "cocoa"],
    "conan": ["cpp", "c++", "cmake", "gcc", "clang", "visual studio"],
    "cpan": ["perl", "cpan", "metacpan", "perl5", "moose"],
    "cran": ["r", "rstats", "ggplot", "dplyr", "shiny", "tidyverse"],
    "docker_hub": ["docker", "container", "dockerfile", "compose", "kubernetes"],
    "helm": ["helm", "kubernetes", "k8s", "chart", "tiller"],
    "swift": ["swift", "swiftpm", "ios", "macos", "xcode"],
    "vcpkg": ["vcpkg", "cpp", "c++", "visual", "studio", "cmake"],
}

_DEFAULT_FRAMEWORKS: dict[str, list[str]] = {
    "npm": ["react", "vue", "angular", "express", "next", "nuxt", "gatsby"],
    "composer": ["laravel/framework", "symfony/symfony", "drupal/core"],
    "pip": ["django", "flask", "fastapi", "tornado", "pyramid"],
    "cargo": ["tokio", "serde", "actix-web", "rocket", "warp"],
    "maven": ["spring-boot", "hibernate", "junit", "mockito"],
    "nuget": ["Microsoft.AspNetCore", "EntityFramework", "Newtonsoft.Json"],
    "gem": ["rails", "sinatra", "rspec", "capybara"],
    "cocoapods": ["Alamofire", "SnapKit", "RxSwift"],
    "conan": ["boost", "poco", "protobuf"],
    "cpan": ["Mojolicious", "Catalyst", "DBIx::Class"],
    "cran": ["ggplot2", "dplyr", "shiny", "knitr"],
    "docker_hub": ["nginx", "redis", "postgres", "mysql"],
    "helm": ["ingress-nginx", "cert-manager", "prometheus"],
    "swift": ["Alamofire", "SnapKit", "RxSwift"],
    "vcpkg": ["boost", "opencv", "curl"],
}

_DEFAULT_FILE_PATTERNS: dict[str, list[str]] = {
    "npm": ["package.json", "package-lock.json", "yarn.lock", "pnpm-lock.yaml"],
    "composer": ["composer.json", "composer.lock"],
    "pip": ["requirements.txt", "setup.py", "pyproject.toml", "Pipfile"],
    "cargo": ["Cargo.toml", "Cargo.lock"],
    "maven": ["pom.xml", "maven.config"],
    "nuget": ["*.csproj", "packages.config", "Directory.Build.props"],
    "gem": ["Gemfile", "Gemfile.lock", "*.gemspec"],
    "cocoapods": ["Podfile", "Podfile.lock", "*.podspec"],
    "conan": ["conanfile.txt", "conanfile.py", "conandata.yml"],
    "cpan": ["cpanfile", "Makefile.PL", "Build.PL"],
    "cran": ["DESCRIPTION", "NAMESPACE", "*.R"],
    "docker_hub": ["Dockerfile", "docker-compose.yml", "docker-compose.yaml"],
    "helm": ["Chart.yaml", "values.yaml", "requirements.yaml"],
    "swift": ["Package.swift", "Package.resolved"],
    "vcpkg": ["vcpkg.json", "portfile.cmake"],
}
