"""Per-stage execution of a post's publishing pipeline.

The service runs exactly one stage per call and turns collaborator outcomes
into ``StageResult`` values. Choosing which stage runs next is left to the
caller (see ``mktdept.core.runner``).
"""
from __future__ import annotations
import logging
from typing import Awaitable, Optional, Sequence, Tuple

from jinja2 import TemplateError

from mktdept.core.config import Settings
from mktdept.core.errors import ConfigurationError
from mktdept.core.grok import AiServiceFactory
from mktdept.core.verification import UrlVerificationService, build_full_url
from mktdept.core.workflow import StageStatus, StageType, is_dependent_stage
from mktdept.db.models import Post, Project
from mktdept.db.store import ProfileStore, ProjectStore
from mktdept.generators.site_gen import IndexExporter, SiteGenerator
from mktdept.generators.site_gen.generator import resolve_uri
from mktdept.generators.site_gen.render import RenderError
from mktdept.publishers.base import BasePublisher
from mktdept.publishers.devto import DevToClient
from mktdept.publishers.getlate import platform_display_name
from mktdept.publishers.registry import PublisherRegistry
from mktdept.schemas.pipeline import Pipeline, PipelineExecution, PipelineStage, StageResult
from mktdept.schemas.project import PublishingProfile, WebTransform

log = logging.getLogger(__name__)

HN_SUFFIX = ".hn.html"
DEVTO_NOT_CONFIGURED = "Dev.to API key not configured. Add a 'devto' API key in Settings."


def splice_url(content: str, url: str, placement: str) -> str:
    if placement.strip().lower() == "start":
        return f"{url}\n\n{content}"
    return f"{content}\n\n{url}"


def append_hashtags(content: str, hashtags: Sequence[str]) -> str:
    """Append a profile's hashtags that the content does not already carry."""
    present = {word.lower() for word in content.split()}
    missing = []
    for tag in hashtags:
        tag = tag if tag.startswith("#") else f"#{tag}"
        if tag.lower() not in present and tag not in missing:
            missing.append(tag)
    if not missing:
        return content
    return f"{content}\n\n{' '.join(missing)}"


class PipelineExecutionService:
    def __init__(
        self,
        settings: Settings,
        store: ProjectStore,
        profiles: ProfileStore,
        site_generator: Optional[SiteGenerator] = None,
        index_exporter: Optional[IndexExporter] = None,
        verifier: Optional[UrlVerificationService] = None,
        ai_factory: Optional[AiServiceFactory] = None,
        publishers: Optional[PublisherRegistry] = None,
        devto: Optional[DevToClient] = None,
    ):
        self.settings = settings
        self.store = store
        self.profiles = profiles
        self.site_generator = site_generator or SiteGenerator()
        self.index_exporter = index_exporter or IndexExporter(store)
        self.verifier = verifier or UrlVerificationService(timeout=settings.verify_timeout)
        self.ai_factory = ai_factory or AiServiceFactory(settings)
        self.publishers = publishers or PublisherRegistry.default(settings)
        self.devto = devto or DevToClient(
            api_key=settings.devto_api_key,
            api_base=settings.devto_api_base,
            timeout=settings.publish_timeout,
        )

    # gatekeepers

    def execute_web_export(self, project: Project, post: Post, execution: PipelineExecution) -> StageResult:
        ctx = {"post": post.name, "stage": StageType.WEB_EXPORT.value}
        if not project.settings.has_url_base():
            log.warning("Web export skipped, no URL base configured", extra=ctx)
            return StageResult.failed("Web publishing not configured - set a URL base in project settings")

        try:
            code = self.verifier.generate_verification_code()
            execution.verification_code = code

            web_transform = self.store.load_web_transform(project, post.name)
            if web_transform is None:
                web_transform = WebTransform(uri=resolve_uri(post, None))

            exported = self.site_generator.export(project, post, web_transform, code)
            uri = resolve_uri(post, web_transform)
            full_url = build_full_url(project.settings.url_base, uri)
            execution.verified_url = full_url

            web_transform.uri = uri
            web_transform.mark_exported(str(exported))
            self.store.save_web_transform(project, post.name, web_transform)

            index = self.index_exporter.export_all(project, project.published_posts())
        except (OSError, RenderError, TemplateError) as e:
            log.error("Web export failed: %s", e, extra=ctx)
            return StageResult.failed(f"Export failed: {e}")

        message = f"Post exported: {exported.name}"
        if index.tag_index_path:
            message += f" | Tags: {index.tag_count}"
        if index.listing_pages:
            message += f" | Listings: {len(index.listing_pages)} pages"
        if index.has_errors:
            log.warning("Index export had errors: %s", "; ".join(index.errors), extra=ctx)
        log.debug("Index export: %s", index.summary(), extra=ctx)

        log.info("Web export completed: %s", full_url, extra=ctx)
        return StageResult.completed(message, full_url)

    def execute_url_verify(
        self, project: Project, post: Post, execution: PipelineExecution, stage: PipelineStage
    ) -> StageResult:
        ctx = {"post": post.name, "stage": stage.id}
        url = execution.verified_url
        if not url or not url.strip():
            log.info("No URL to verify, web export required first", extra=ctx)
            return StageResult.failed("No URL to verify - run web export first")

        require_match = stage.options.require_code_match
        log.info("Verifying %s (code match required: %s)", url, require_match, extra=ctx)
        result = self.verifier.verify(url, execution.verification_code, require_match)

        if not result.is_live:
            log.error("URL verification failed: %s", result.message, extra=ctx)
            return StageResult.failed(result.message)
        if result.warning:
            log.warning("URL verification warning: %s", result.message, extra=ctx)
            return StageResult.warning(result.message, url)
        return StageResult.completed(result.message, url)

    def is_web_export_valid(self, project: Project, post: Post) -> bool:
        web_transform = self.store.load_web_transform(project, post.name)
        return web_transform is not None and web_transform.exported_file_exists()

    def are_gatekeepers_complete(
        self, pipeline: Pipeline, execution: PipelineExecution, project: Project, post: Post
    ) -> bool:
        """Gatekeeper completion that also requires the exported page to still exist on disk."""
        for stage in pipeline.gatekeeper_stages():
            result = execution.get_stage_result(stage.id)
            if result is None or not result.is_complete:
                return False
            if stage.type == StageType.WEB_EXPORT and not self.is_web_export_valid(project, post):
                return False
        return True

    def effective_status(
        self,
        stage: PipelineStage,
        pipeline: Pipeline,
        execution: PipelineExecution,
        project: Project,
        post: Post,
    ) -> StageStatus:
        result = execution.get_stage_result(stage.id)
        if result is not None:
            return result.status
        if stage.type is not None and is_dependent_stage(stage.type):
            if not self.are_gatekeepers_complete(pipeline, execution, project, post):
                return StageStatus.LOCKED
        return StageStatus.PENDING

    # transforms

    def generate_transform_with_url(
        self, project: Project, post: Post, stage: PipelineStage, verified_url: Optional[str]
    ) -> Awaitable[str]:
        """Start the AI rewrite for a stage; raises ConfigurationError before any network call."""
        agent = project.settings.selected_agent
        service = self.ai_factory.get(agent)
        if service is None or not service.is_configured():
            raise ConfigurationError(f"AI service not configured: {agent}")

        profile = self.profiles.get(stage.profile_id)
        prompt = stage.effective_prompt()
        if verified_url and verified_url.strip():
            placement = profile.options.url_placement if profile else "end"
            prompt = (
                f"{prompt}\n\n"
                f"IMPORTANT: This content has been published at: {verified_url}\n"
                f"Include this URL at the {placement} of your transformed content."
            )

        target = platform_display_name(profile.platform) if profile and profile.platform else "Social"
        log.info("Generating %s transform", target, extra={"post": post.name, "stage": stage.id})
        return service.transform_content(prompt, post.read_content())

    # dependent stages

    def _resolve_publisher(
        self, stage: PipelineStage
    ) -> Tuple[Optional[PublishingProfile], Optional[BasePublisher], Optional[StageResult]]:
        profile = self.profiles.get(stage.profile_id)
        if profile is None:
            return None, None, StageResult.failed(f"Publishing profile not found: {stage.profile_id}")
        if not profile.platform or not profile.platform.strip():
            return profile, None, StageResult.failed(f"Profile '{profile.name}' has no platform configured")

        publisher = self.publishers.get(profile.platform)
        if publisher is None:
            return profile, None, StageResult.failed(f"No publishing backend for platform: {profile.platform}")
        if not publisher.is_configured():
            return profile, publisher, StageResult.failed(
                f"{publisher.name} API key not configured. Add a '{publisher.name}' API key in Settings."
            )
        return profile, publisher, None

    def check_stage_ready(self, project: Project, post: Post, stage: PipelineStage) -> Optional[StageResult]:
        """FAILED result when a dependent stage cannot publish, checked before any AI call."""
        if stage.type == StageType.GETLATE:
            failure = self._resolve_publisher(stage)[2]
        elif stage.type == StageType.DEV_TO and not self.devto.is_configured():
            failure = StageResult.failed(DEVTO_NOT_CONFIGURED)
        else:
            failure = None
        if failure is not None:
            log.error("Stage not ready: %s", failure.message, extra={"post": post.name, "stage": stage.id})
        return failure

    async def execute_social_publish(
        self,
        project: Project,
        post: Post,
        execution: PipelineExecution,
        stage: PipelineStage,
        content: str,
    ) -> StageResult:
        ctx = {"post": post.name, "stage": stage.id}
        try:
            profile, publisher, failure = self._resolve_publisher(stage)
            if failure is not None:
                log.error("%s", failure.message, extra=ctx)
                return failure

            # The AI prompt may also have been told to include this URL
            options = profile.options
            if options.include_url and execution.verified_url:
                content = splice_url(content, execution.verified_url, options.url_placement)
            content = append_hashtags(content, options.custom_hashtags)

            log.info("Publishing to %s via profile %s", platform_display_name(profile.platform),
                     profile.name, extra=ctx)
            result = await publisher.publish(profile, content)
        except Exception as e:
            log.exception("Publishing error", extra=ctx)
            return StageResult.failed(f"Publishing error: {e}")

        if result.success:
            return StageResult.completed(result.message, result.post_url)
        log.error("Publish failed: %s", result.message, extra=ctx)
        return StageResult.failed(result.message)

    async def execute_devto_publish(
        self,
        project: Project,
        post: Post,
        execution: PipelineExecution,
        stage: PipelineStage,
        content: str,
    ) -> StageResult:
        ctx = {"post": post.name, "stage": stage.id}
        if not self.devto.is_configured():
            return StageResult.failed(DEVTO_NOT_CONFIGURED)

        options = stage.options
        canonical_url = execution.verified_url if options.include_canonical else None
        log.info("Dev.to publish (published=%s, canonical=%s)", options.published, canonical_url, extra=ctx)
        try:
            result = await self.devto.publish_article(
                title=post.title,
                body_markdown=content,
                tags=post.meta.tags,
                canonical_url=canonical_url,
                description=post.meta.description,
                published=options.published,
            )
        except Exception as e:
            log.exception("Dev.to publishing error", extra=ctx)
            return StageResult.failed(f"Dev.to publishing error: {e}")

        if result.success:
            return StageResult.completed(result.message, result.post_url)
        return StageResult.failed(result.message)

    def execute_copy_paste(
        self,
        project: Project,
        post: Post,
        execution: PipelineExecution,
        stage: PipelineStage,
        content: str,
    ) -> StageResult:
        if not content.strip():
            return StageResult.failed("Transformed content is empty")
        return StageResult.completed(f"Content ready to copy ({len(content)} characters)")

    def execute_hacker_news_export(
        self,
        project: Project,
        post: Post,
        execution: PipelineExecution,
        stage: PipelineStage,
        content: str,
    ) -> StageResult:
        ctx = {"post": post.name, "stage": stage.id}
        uri = resolve_uri(post, self.store.load_web_transform(project, post.name))
        hn_uri = uri[: -len(".html")] + HN_SUFFIX
        try:
            path = self.site_generator.export_with_content(project, post, hn_uri, content)
        except (OSError, RenderError, TemplateError) as e:
            log.error("Hacker News export failed: %s", e, extra=ctx)
            return StageResult.failed(f"Export failed: {e}")
        url = build_full_url(project.settings.url_base, hn_uri)
        return StageResult.completed(f"Hacker News version exported: {path.name}", url)
