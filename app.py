"""
Main NiceGUI application for GraphLens.

Three pages share one query bridge:
- /        query console (free-form Cypher, JSON result, graph of the result)
- /graph   read-only viewer of the whole database
- /editor  locally authored graph, edited with the right-click menu

Each page owns its own GraphSession. The session is closed only when the
client is deleted (a reconnect keeps it), so late query results are dropped.
"""

import asyncio
import logging
import os
import sys

from nicegui import app, ui

from graphlens.config import (
    Neo4jSettings,
    get_neo4j_settings,
    get_ui_port,
    get_ui_title,
    has_neo4j_credentials,
    load_env,
    set_neo4j_settings,
)

load_env()

logging.basicConfig(
    level=os.environ.get("GRAPHLENS_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("graphlens.app")

from graphlens import panels
from graphlens.bridge import QueryBridge, QueryService, validate_connection
from graphlens.builder import records_summary
from graphlens.canvas import GraphCanvas
from graphlens.interaction import Mode
from graphlens.loader import GraphLoader
from graphlens.session import GraphSession, create_editor_session

# One driver for the whole process; pages only see the bridge
query_service = QueryService(get_neo4j_settings())
query_bridge = QueryBridge(query_service)

# Screen refresh rate of the layout task
LAYOUT_INTERVAL = 1 / 30


async def check_connection():
    """Log whether the configured database answers at startup."""
    is_valid, message = await validate_connection(query_service.settings)
    if is_valid:
        logger.info(f"Neo4j check: {message}")
    else:
        logger.warning(f"Neo4j check failed: {message}")


app.on_startup(check_connection)
app.on_shutdown(query_service.close)


# Helper to show the connection settings dialog
def show_connection_dialog(on_complete=None):
    """Show modal dialog to configure the Neo4j connection."""
    current = get_neo4j_settings()
    with ui.dialog() as dialog, ui.card().classes('w-[500px]'):
        ui.label('Neo4j Connection').classes('text-lg font-bold')
        if not has_neo4j_credentials():
            ui.label('No password configured yet.').classes('text-gray-500 text-sm mb-2')

        uri_input = ui.input('URI', value=current.uri, placeholder='neo4j://localhost:7687').classes('w-full')
        user_input = ui.input('Username', value=current.username).classes('w-full')
        password_input = ui.input(
            'Password',
            value=current.password,
            password=True,
            password_toggle_button=True,
        ).classes('w-full')
        database_input = ui.input('Database (optional)', value=current.database or '').classes('w-full')

        status_label = ui.label('').classes('text-sm')

        async def do_validate():
            settings = Neo4jSettings(
                uri=uri_input.value.strip(),
                username=user_input.value.strip(),
                password=password_input.value,
                database=database_input.value.strip() or None,
            )
            status_label.text = '⏳ Connecting...'
            status_label.classes('text-yellow-500', remove='text-red-500 text-green-500')

            is_valid, message = await validate_connection(settings)

            if is_valid:
                status_label.text = f'✅ {message}'
                status_label.classes('text-green-500', remove='text-red-500 text-yellow-500')
                set_neo4j_settings(settings)
                await query_service.reconfigure(settings)
                ui.notify('Connection settings saved', type='positive')
                await asyncio.sleep(1)
                dialog.close()
                if on_complete:
                    on_complete()
            else:
                status_label.text = f'❌ {message}'
                status_label.classes('text-red-500', remove='text-green-500 text-yellow-500')

        with ui.row().classes('w-full justify-end gap-2 mt-4'):
            ui.button('Cancel', on_click=dialog.close).props('flat')
            ui.button('Validate & Save', on_click=do_validate).props('color=primary')

    dialog.open()
    return dialog


def render_header(title: str):
    with ui.header().classes('items-center justify-between px-4'):
        ui.label(title).classes('text-lg font-bold')
        with ui.row().classes('items-center gap-4'):
            ui.link('Console', '/').classes('text-white')
            ui.link('Graph', '/graph').classes('text-white')
            ui.link('Editor', '/editor').classes('text-white')
            ui.button(icon='settings', on_click=show_connection_dialog) \
                .props('flat round dense color=white').tooltip('Connection settings')


def _attach_session(session: GraphSession) -> GraphCanvas:
    """Build a canvas for the session and tie both to this client."""
    canvas = GraphCanvas(session).build()
    ui.keyboard(on_key=canvas.handlers['handle_key'])
    session.bind_to_client(ui.context.client)
    return canvas


@ui.page('/')
def console_page():
    render_header(get_ui_title())
    session = GraphSession(Mode.READ_ONLY, autorun=True, interval=LAYOUT_INTERVAL)
    loader = GraphLoader(query_bridge, session)

    with ui.column().classes('w-full p-4 gap-4'):
        ui.label('Query console').classes('text-xl font-bold')
        query_input = ui.textarea(
            'Cypher',
            value='MATCH (n)-[r]->(m) RETURN n, r, m LIMIT 25',
        ).props('outlined rows=4').classes('w-full font-mono')

        async def do_run():
            query = (query_input.value or '').strip()
            if not query:
                ui.notify('Enter a query first', type='warning')
                return
            run_button.disable()
            try:
                result = await loader.run_console(query)
            finally:
                run_button.enable()
            if result is None:
                return
            panels.render_json(result_container, result)
            if isinstance(result, dict):
                ui.notify(result['error'], type='negative')
            else:
                ui.notify(records_summary(result), type='info')

        run_button = ui.button('Run Query', on_click=do_run).props('color=primary')
        with ui.row().classes('w-full items-start no-wrap gap-4'):
            result_container = ui.column().classes('w-96 max-h-[600px] overflow-auto')
            with ui.column():
                _attach_session(session)


@ui.page('/graph')
def graph_page():
    render_header(get_ui_title())
    session = GraphSession(Mode.READ_ONLY, autorun=True, interval=LAYOUT_INTERVAL)
    loader = GraphLoader(query_bridge, session)

    with ui.column().classes('w-full p-4 gap-2'):
        with ui.row().classes('items-center gap-4'):
            ui.label('Graph viewer').classes('text-xl font-bold')

            async def do_load():
                load_button.disable()
                try:
                    if await loader.load():
                        ui.notify('Graph loaded', type='positive')
                finally:
                    load_button.enable()

            load_button = ui.button('Load Graph', icon='refresh', on_click=do_load).props('color=primary')
        ui.label('Drag nodes to move them. Click a node or double-click a relationship for details.') \
            .classes('text-sm text-grey-7')
        _attach_session(session)

    # Initial fetch once the page is connected
    ui.timer(0.1, do_load, once=True)


@ui.page('/editor')
def editor_page():
    render_header(get_ui_title())
    session = create_editor_session(autorun=True, interval=LAYOUT_INTERVAL)

    with ui.column().classes('w-full p-4 gap-2'):
        ui.label('Basic graph editor - right click to modify').classes('text-xl font-bold')
        _attach_session(session)


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title=get_ui_title(),
        port=get_ui_port(),
        reload=not getattr(sys, 'frozen', False),
    )
