"""Build-level profile of a Spring project: tooling, versions, libraries and test setup."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .logging import get_logger
from .repo_scanner import RepoScanner

LOGGER = get_logger("profile")

GRADLE_FILES = ("build.gradle", "build.gradle.kts")

# Artifact fragment -> label, checked in order. A fragment matches at the start
# of the artifact id or after a separator, so "h2" does not match "oauth2".
SPRING_FEATURES: Tuple[Tuple[str, str], ...] = (
    ("spring-boot-starter-web", "Spring Web (REST APIs)"),
    ("spring-boot-starter-data-jpa", "Spring Data JPA"),
    ("spring-boot-starter-data-mongodb", "Spring Data MongoDB"),
    ("spring-kafka", "Apache Kafka"),
    ("spring-boot-starter-security", "Spring Security"),
    ("spring-cloud-starter-openfeign", "OpenFeign HTTP Client"),
    ("spring-boot-starter-actuator", "Spring Actuator"),
    ("spring-boot-starter-validation", "Bean Validation"),
    ("spring-boot-starter-cache", "Spring Cache"),
    ("spring-boot-starter-data-redis", "Spring Data Redis"),
    ("postgresql", "PostgreSQL"),
    ("mysql-connector", "MySQL"),
    ("h2", "H2 Database"),
    ("flyway", "Flyway Migrations"),
    ("liquibase", "Liquibase Migrations"),
    ("lombok", "Lombok"),
    ("mapstruct", "MapStruct"),
    ("springdoc-openapi", "SpringDoc OpenAPI"),
    ("swagger", "Swagger"),
)

TEST_FRAMEWORKS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"@SpringBootTest\b"), "Spring Boot Test"),
    (re.compile(r"\bMockito\b|@Mock\b|@MockBean\b"), "Mockito"),
    (re.compile(r"@DataJpaTest\b"), "JPA Test Slices"),
    (re.compile(r"@WebMvcTest\b"), "Web MVC Test Slices"),
    (re.compile(r"\bTestcontainers\b|@Container\b"), "Testcontainers"),
)

_GRADLE_DEPENDENCY = re.compile(r"['\"]([\w\-.]+:[\w\-.]+)(?::[\w\-.]+)?['\"]")
_GRADLE_CONFIGURATIONS = ("implementation", "api", "compile", "runtimeOnly", "testImplementation")
_GRADLE_JAVA_VERSION = (
    re.compile(r"\bsourceCompatibility\s*=\s*(?:JavaVersion\.VERSION_)?['\"]?([\d._]+)"),
    re.compile(r"\bjvmTarget\s*(?:=|\.set\s*\()\s*(?:JvmTarget\.JVM_)?['\"]?([\d._]+)"),
    re.compile(r"\blanguageVersion\s*(?:=|\.set\s*\()\s*JavaLanguageVersion\.of\s*\(\s*(\d+)"),
)
_GRADLE_BOOT_VERSION = (
    re.compile(r"""id\s*\(?\s*['"]org\.springframework\.boot['"]\s*\)?\s*version\s*['"]([^'"]+)['"]"""),
    re.compile(r"""\bspringBootVersion\s*=\s*['"]([^'"]+)['"]"""),
    re.compile(r"""['"]org\.springframework\.boot:spring-boot-gradle-plugin:([^'"$]+)['"]"""),
)
_MAVEN_JAVA_PROPERTIES = ("java.version", "maven.compiler.release", "maven.compiler.source")
_BOOT_BOMS = ("spring-boot-starter-parent", "spring-boot-dependencies")


@dataclass(frozen=True)
class ProjectProfile:
    """What the build files and test sources say about a project."""

    build_tool: str = "unknown"
    build_file: Optional[str] = None
    java_version: Optional[str] = None
    spring_boot_version: Optional[str] = None
    dependencies: Tuple[str, ...] = field(default_factory=tuple)
    spring_features: Tuple[str, ...] = field(default_factory=tuple)
    test_frameworks: Tuple[str, ...] = field(default_factory=tuple)
    unit_tests: int = 0
    integration_tests: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "build_tool": self.build_tool,
            "build_file": self.build_file,
            "java_version": self.java_version,
            "spring_boot_version": self.spring_boot_version,
            "dependencies": list(self.dependencies),
            "spring_features": list(self.spring_features),
            "test_frameworks": list(self.test_frameworks),
            "unit_tests": self.unit_tests,
            "integration_tests": self.integration_tests,
        }


@dataclass
class _BuildInfo:
    dependencies: List[str] = field(default_factory=list)
    java_version: Optional[str] = None
    spring_boot_version: Optional[str] = None


def detect_project_profile(root: str | Path, scanner: RepoScanner | None = None) -> ProjectProfile:
    """Profile the build and test setup of the project at ``root``.

    Maven wins when both ``pom.xml`` and a Gradle script are present. An
    unparseable build file yields an empty dependency list, never an error.
    """
    root_path = Path(root)
    build_tool = "unknown"
    build_file: Optional[str] = None
    info = _BuildInfo()

    pom = root_path / "pom.xml"
    if pom.is_file():
        build_tool, build_file = "maven", "pom.xml"
        info = _parse_pom(pom)
    else:
        for name in GRADLE_FILES:
            candidate = root_path / name
            if candidate.is_file():
                build_tool, build_file = "gradle", name
                info = _parse_gradle(candidate.read_text(encoding="utf-8", errors="ignore"))
                break

    frameworks, unit_tests, integration_tests = _scan_tests(root_path, scanner or RepoScanner())
    profile = ProjectProfile(
        build_tool=build_tool,
        build_file=build_file,
        java_version=info.java_version,
        spring_boot_version=info.spring_boot_version,
        dependencies=tuple(sorted(set(info.dependencies))),
        spring_features=tuple(detect_spring_features(info.dependencies)),
        test_frameworks=tuple(frameworks),
        unit_tests=unit_tests,
        integration_tests=integration_tests,
    )
    LOGGER.debug(
        "Profiled %s build (%d dependencies, %d unit tests, %d integration tests)",
        build_tool,
        len(profile.dependencies),
        unit_tests,
        integration_tests,
    )
    return profile


def detect_spring_features(dependencies: Iterable[str]) -> List[str]:
    artifacts = [dependency.rsplit(":", 1)[-1].lower() for dependency in dependencies]
    features: List[str] = []
    for fragment, label in SPRING_FEATURES:
        pattern = re.compile(rf"(?:^|[-.]){re.escape(fragment)}")
        if any(pattern.search(artifact) for artifact in artifacts):
            features.append(label)
    return features


# ---------------------------------------------------------------------------
# Maven
# ---------------------------------------------------------------------------


def _parse_pom(path: Path) -> _BuildInfo:
    info = _BuildInfo()
    try:
        root = ET.fromstring(path.read_text(encoding="utf-8", errors="ignore"))
    except ET.ParseError as exc:
        LOGGER.warning("Could not parse %s: %s", path, exc)
        return info

    namespace = _detect_xml_namespace(root)

    def tag(name: str) -> str:
        return f"{{{namespace}}}{name}" if namespace else name

    properties: Dict[str, str] = {}
    props = root.find(tag("properties"))
    if props is not None:
        for prop in props:
            local = prop.tag.rsplit("}", 1)[-1]
            properties[local] = (prop.text or "").strip()

    for dep in root.findall(f".//{tag('dependency')}"):
        group = dep.findtext(tag("groupId"), default="").strip()
        artifact = dep.findtext(tag("artifactId"), default="").strip()
        if group and artifact:
            info.dependencies.append(f"{group}:{artifact}")
        if artifact in _BOOT_BOMS and not info.spring_boot_version:
            info.spring_boot_version = _resolve(dep.findtext(tag("version"), default=""), properties)

    for name in _MAVEN_JAVA_PROPERTIES:
        if properties.get(name):
            info.java_version = _resolve(properties[name], properties)
            break

    boot = properties.get("spring-boot.version")
    parent = root.find(tag("parent"))
    if boot:
        info.spring_boot_version = _resolve(boot, properties)
    elif parent is not None and parent.findtext(tag("artifactId"), default="").strip() in _BOOT_BOMS:
        info.spring_boot_version = _resolve(parent.findtext(tag("version"), default=""), properties)
    return info


def _detect_xml_namespace(element: ET.Element) -> str | None:
    match = re.match(r"\{(.+)}", element.tag)
    return match.group(1) if match else None


def _resolve(value: str, properties: Dict[str, str]) -> Optional[str]:
    """Expand a single ``${property}`` reference; unknown references stay as written."""
    value = value.strip()
    match = re.fullmatch(r"\$\{([^}]+)\}", value)
    if match and properties.get(match.group(1)):
        return properties[match.group(1)]
    return value or None


# ---------------------------------------------------------------------------
# Gradle
# ---------------------------------------------------------------------------


def _parse_gradle(content: str) -> _BuildInfo:
    info = _BuildInfo()
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("//"):
            continue
        if any(token in line for token in _GRADLE_CONFIGURATIONS):
            match = _GRADLE_DEPENDENCY.search(line)
            if match:
                info.dependencies.append(match.group(1))
    info.java_version = _first_match(_GRADLE_JAVA_VERSION, content)
    info.spring_boot_version = _first_match(_GRADLE_BOOT_VERSION, content)
    return info


def _first_match(patterns: Iterable[re.Pattern[str]], content: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(content)
        if match:
            return match.group(1).replace("_", ".")
    return None


# ---------------------------------------------------------------------------
# Test sources
# ---------------------------------------------------------------------------


def _scan_tests(root: Path, scanner: RepoScanner) -> Tuple[List[str], int, int]:
    found: Set[str] = set()
    unit_tests = 0
    integration_tests = 0
    for rel_path in scanner.iter_files(root):
        path = PurePosixPath(rel_path)
        if path.suffix not in (".java", ".kt") or "test" not in path.parts[:-1]:
            continue
        stem = path.stem
        if stem.endswith(("IT", "IntegrationTest")):
            integration_tests += 1
        elif stem.endswith(("Test", "Tests")):
            unit_tests += 1
        try:
            text = (root / rel_path).read_text(encoding="utf-8", errors="ignore")
        except OSError as exc:
            LOGGER.debug("Skipping unreadable test source %s: %s", rel_path, exc)
            continue
        for pattern, label in TEST_FRAMEWORKS:
            if pattern.search(text):
                found.add(label)
    frameworks = [label for _, label in TEST_FRAMEWORKS if label in found]
    return frameworks, unit_tests, integration_tests


__all__ = ["ProjectProfile", "detect_project_profile", "detect_spring_features"]
