"""Demo content for running the resolver with in-memory stores."""

from __future__ import annotations

from app.entities import EntityTypeDefinition, EntityViewDisplay


def register_core_entity_types(entities) -> None:
    entities.register_entity_type(EntityTypeDefinition(id="node"))
    entities.register_entity_type(EntityTypeDefinition(id="block_content"))
    entities.register_entity_type(EntityTypeDefinition(id="user_role", content=False, revisionable=False))


def seed_demo_site(entities, displays, aliases) -> dict:
    """Create a layout-enabled page, a plain article and one inline block."""
    register_core_entity_types(entities)

    block = entities.create(
        "block_content",
        "basic",
        label="Opening hours",
        fields={"body": "Mon-Fri 9:00-17:00"},
    )

    displays.save(
        EntityViewDisplay(
            target_entity_type="node",
            bundle="page",
            mode="default",
            layout_enabled=True,
            allow_overrides=True,
            sections=[
                {
                    "layout_id": "layout_onecol",
                    "layout_settings": {"label": ""},
                    "components": [
                        {
                            "uuid": "c0e7c9a2-5f0e-4c53-9a53-0f3f7c1c0a01",
                            "region": "content",
                            "weight": 0,
                            "configuration": {
                                "id": "field_block:node:page:title",
                                "label": "Title",
                                "label_display": False,
                                "formatter": {"type": "string"},
                            },
                        },
                        {
                            "uuid": "c0e7c9a2-5f0e-4c53-9a53-0f3f7c1c0a02",
                            "region": "content",
                            "weight": 1,
                            "configuration": {
                                "id": "inline_block:basic",
                                "label": "Opening hours",
                                "label_display": "visible",
                                "block_revision_id": block.revision_id,
                                "view_mode": "full",
                            },
                        },
                    ],
                }
            ],
        )
    )
    displays.save(EntityViewDisplay(target_entity_type="node", bundle="article", mode="default"))

    about = entities.create(
        "node",
        "page",
        label="About us",
        fields={"label": "About us", "body": "Who we are."},
        translations={"fr": {"label": "À propos"}},
    )
    article = entities.create("node", "article", label="Hello world", fields={"label": "Hello world"})
    aliases.add_alias("/about-us", "node", about.id)
    aliases.add_alias("/a-propos", "node", about.id, langcode="fr")
    aliases.add_alias("/blog/hello-world", "node", article.id)
    aliases.add_redirect("/about", "/about-us")
    return {"block": block, "about": about, "article": article}
