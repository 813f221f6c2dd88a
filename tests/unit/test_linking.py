"""
Unit tests for link selection and draft enrichment.
"""
from dataclasses import replace

from raydrop.core.domain.draft import DraftStatus, LinkDisplay, LinkType, XrayLinking
from raydrop.core.domain.entities import EntityType, XrayEntity
from raydrop.core.services.entity_cache import ProjectEntityCache
from raydrop.core.services.linking import (
    deselect_link,
    enrich_draft_from_cache,
    normalize_legacy_links,
    select_link,
)
from tests.fakes import complete_draft


def loaded_cache(project_id='10001'):
    cache = ProjectEntityCache(project_key='PROJ', project_id=project_id, loaded=True)
    cache.entry(EntityType.TEST_PLANS).items = [XrayEntity('1001', 'PROJ-1', 'Release plan')]
    cache.entry(EntityType.TEST_SETS).items = [XrayEntity('3001', 'PROJ-3', 'Smoke set')]
    return cache


class TestSelection:
    """select / deselect on XrayLinking."""

    def test_select_adds_id_and_display(self):
        linking = select_link(XrayLinking(), LinkType.TEST_SET, XrayEntity('3001', 'PROJ-3', 'Smoke set'))

        assert linking.test_set_ids == ['3001']
        assert linking.displays_for(LinkType.TEST_SET) == [LinkDisplay('3001', 'PROJ-3: Smoke set')]

    def test_select_existing_legacy_key_is_noop(self):
        linking = XrayLinking(test_plan_ids=['PROJ-1'])
        assert select_link(linking, LinkType.TEST_PLAN, XrayEntity('1001', 'PROJ-1')) is linking

    def test_deselect(self):
        linking = XrayLinking(
            test_plan_ids=['1001', '1002'],
            displays={LinkType.TEST_PLAN: [LinkDisplay('1001', 'PROJ-1: a')]},
        )
        result = deselect_link(linking, LinkType.TEST_PLAN, '1001')

        assert result.test_plan_ids == ['1002']
        assert result.displays_for(LinkType.TEST_PLAN) == []


class TestNormalization:
    """Legacy key values become issue ids."""

    def test_keys_are_rewritten(self):
        linking = XrayLinking(
            test_plan_ids=['PROJ-1'],
            test_set_ids=['3001', 'PROJ-99'],
            displays={LinkType.TEST_PLAN: [LinkDisplay('PROJ-1', 'PROJ-1: Release plan')]},
        )

        result = normalize_legacy_links(linking, loaded_cache())

        assert result.test_plan_ids == ['1001']
        assert result.displays_for(LinkType.TEST_PLAN) == [LinkDisplay('1001', 'PROJ-1: Release plan')]
        assert result.test_set_ids == ['3001', 'PROJ-99']

    def test_nothing_to_rewrite(self):
        linking = XrayLinking(test_plan_ids=['1001'])
        assert normalize_legacy_links(linking, loaded_cache()) is linking


class TestEnrichment:
    """enrich_draft_from_cache."""

    def test_backfills_project_id(self):
        draft = complete_draft('a')

        enriched = enrich_draft_from_cache(draft, loaded_cache())

        assert enriched.xray_linking.project_id == '10001'
        assert draft.xray_linking.project_id is None

    def test_existing_project_id_kept(self):
        draft = complete_draft('a')
        draft = replace(draft, xray_linking=replace(draft.xray_linking, project_id='555'))

        assert enrich_draft_from_cache(draft, loaded_cache()) is draft

    def test_unloaded_cache_is_ignored(self):
        draft = complete_draft('a')
        cache = ProjectEntityCache(project_key='PROJ', project_id='10001')

        assert enrich_draft_from_cache(draft, cache) is draft
        assert enrich_draft_from_cache(draft, None) is draft

    def test_imported_draft_untouched(self):
        draft = complete_draft('a', status=DraftStatus.IMPORTED)
        assert enrich_draft_from_cache(draft, loaded_cache()) is draft
