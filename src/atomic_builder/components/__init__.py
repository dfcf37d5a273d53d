"""
Single Directory Component system.

Components are discovered from the ``components/`` directory of every
extension (module or theme) below the site root, rendered with Jinja2,
and created or edited on disk by the builder forms.

Usage::

    from atomic_builder.components.manager import get_component_manager

    manager = get_component_manager()
    components, button = manager.get_component_data("button", "sdc_custom")
"""
