"""Ponto de entrada da Interface de Linha de Comando (CLI) do mailtm_flow."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, AsyncIterator, Optional

import typer
from rich.console import Console
from rich.table import Table

from mailtm_flow.core.config import AppConfig, ConfigLoader, TriggerConfig, get_config, set_config
from mailtm_flow.core.exceptions import MailFlowException
from mailtm_flow.core.logging import configurar_logging
from mailtm_flow.infrastructure.api import AuthSession, MailTmClient
from mailtm_flow.models.mailtm import Credentials, Found, Message
from mailtm_flow.models.rules import load_rules_file
from mailtm_flow.services import BulkDeleteService, RuleEngine, TriggerLoop, WaitForMessageWorkflow

# --- Configuração da Aplicação CLI ---
app = typer.Typer(
    name="mailtm-flow",
    help="Automação de caixas de e-mail temporárias do Mail.tm.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

AddressOption = Annotated[
    Optional[str],
    typer.Option("--address", "-a", envvar="MAILTM_ADDRESS", help="Endereço da conta."),
]
PasswordOption = Annotated[
    Optional[str],
    typer.Option("--password", "-p", envvar="MAILTM_PASSWORD", help="Senha da conta."),
]


@app.callback()
def main(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Arquivo YAML de configuração (padrão: mailtm.yaml)."),
    ] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Ativa logs de depuração.")] = False,
) -> None:
    """Carrega a configuração e prepara o logger antes de cada comando."""
    try:
        app_config = ConfigLoader.load(config_path)
    except MailFlowException as e:
        console.print(f"[bold red]❌ Configuração inválida:[/bold red] {e}")
        raise typer.Exit(code=2)
    if debug:
        app_config.logging.nivel_minimo = "DEBUG"
    set_config(app_config)
    configurar_logging(app_config.logging)


def _run(coro) -> None:
    """Executa a corrotina do comando e converte erros do domínio em código de saída."""
    try:
        asyncio.run(coro)
    except MailFlowException as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise typer.Exit(code=1)


def _require_credentials(address: Optional[str], password: Optional[str]) -> Credentials:
    if not address or not password:
        console.print("[bold red]❌ Informe --address e --password (ou MAILTM_ADDRESS/MAILTM_PASSWORD).[/bold red]")
        raise typer.Exit(code=2)
    return Credentials(address, password)


@asynccontextmanager
async def _client(credentials: Optional[Credentials] = None) -> AsyncIterator[MailTmClient]:
    """Abre um cliente; autentica quando há credenciais."""
    app_config: AppConfig = get_config()
    auth = AuthSession(app_config.api.base_url, timeout=app_config.api.request_timeout)
    client = MailTmClient(auth, config=app_config.api)
    try:
        if credentials is not None:
            await auth.authenticate(credentials.address, credentials.password)
        yield client
    finally:
        await auth.aclose()


def _messages_table(messages: list[Message], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("De")
    table.add_column("Assunto")
    table.add_column("Recebida")
    table.add_column("Lida")
    for m in messages:
        table.add_row(
            m.id,
            m.sender,
            m.subject,
            m.received_at.isoformat() if m.received_at else "-",
            "✔" if m.seen else "",
        )
    return table


@app.command(help="Lista os domínios disponíveis.")
def domains(page: Annotated[int, typer.Option(help="Página.")] = 1) -> None:
    async def _go() -> None:
        async with _client() as client:
            items = await client.get_domains(page)
        table = Table(title="Domínios", show_header=True, header_style="bold magenta")
        table.add_column("ID")
        table.add_column("Domínio")
        table.add_column("Ativo")
        for d in items:
            table.add_row(d.id, d.domain, "sim" if d.is_active else "não")
        console.print(table)

    _run(_go())


@app.command("create-account", help="Cria uma conta com endereço aleatório e exibe as credenciais.")
def create_account(
    password: Annotated[Optional[str], typer.Option("--password", "-p", help="Senha (gerada se omitida).")] = None,
) -> None:
    async def _go() -> None:
        async with _client() as client:
            session = await client.create_random_account(password)
        console.print(f"[bold green]✅ Conta criada:[/bold green] {session.account.address}")
        console.print(f"   - [b]Senha:[/b] {session.password}")
        console.print(f"   - [b]Token:[/b] {session.token}")

    _run(_go())


@app.command(help="Lista as mensagens da caixa de entrada.")
def messages(
    address: AddressOption = None,
    password: PasswordOption = None,
    page: Annotated[Optional[int], typer.Option(help="Página específica (padrão: todas).")] = None,
) -> None:
    credentials = _require_credentials(address, password)

    async def _go() -> None:
        async with _client(credentials) as client:
            items = await client.get_messages(page) if page else await client.get_all_messages()
        if not items:
            console.print("[yellow]Nenhuma mensagem na caixa de entrada.[/yellow]")
            return
        console.print(_messages_table(items, f"Mensagens de {address}"))

    _run(_go())


@app.command(help="Exibe uma mensagem completa.")
def read(
    message_id: Annotated[str, typer.Argument(help="ID da mensagem.")],
    address: AddressOption = None,
    password: PasswordOption = None,
    mark_seen: Annotated[bool, typer.Option("--mark-seen/--keep-unseen", help="Marca como lida.")] = False,
) -> None:
    credentials = _require_credentials(address, password)

    async def _go() -> None:
        async with _client(credentials) as client:
            message = await client.get_message(message_id)
            if mark_seen and not message.seen:
                await client.mark_message_as_seen(message.id)
        console.print(f"[b]De:[/b] {message.sender}")
        console.print(f"[b]Assunto:[/b] {message.subject}")
        for attachment in message.attachments:
            console.print(f"[b]Anexo:[/b] {attachment.filename} ({attachment.id})")
        console.print()
        console.print(message.text or message.body, markup=False)

    _run(_go())


@app.command(help="Aguarda uma mensagem compatível e exibe as URLs do corpo.")
def wait(
    address: AddressOption = None,
    password: PasswordOption = None,
    timeout: Annotated[Optional[float], typer.Option(help="Tempo limite em segundos.")] = None,
    subject: Annotated[Optional[str], typer.Option("--subject", "-s", help="Trecho do assunto.")] = None,
    sender: Annotated[Optional[str], typer.Option("--from", help="Remetente exato.")] = None,
) -> None:
    credentials = _require_credentials(address, password)

    outcome = {}

    async def _go() -> None:
        async with _client(credentials) as client:
            workflow = WaitForMessageWorkflow(client, get_config().workflow)
            outcome["result"] = await workflow.run(timeout, subject_contains=subject, from_address=sender)

    _run(_go())
    result = outcome["result"]
    if not isinstance(result, Found):
        console.print(f"[yellow]Tempo esgotado após {result.elapsed:.1f}s ({result.polls} consultas).[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"[bold green]✅ {result.message.subject}[/bold green] de {result.message.sender}")
    for url in result.extracted_urls:
        console.print(url, markup=False)


@app.command(help="Exclui todas as mensagens da caixa de entrada.")
def purge(
    address: AddressOption = None,
    password: PasswordOption = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Não pedir confirmação.")] = False,
) -> None:
    credentials = _require_credentials(address, password)
    if not yes:
        typer.confirm(f"Excluir todas as mensagens de {address}?", abort=True)

    outcome = {}

    async def _go() -> None:
        async with _client(credentials) as client:
            service = BulkDeleteService(client, get_config().bulk_delete.delay)
            outcome["result"] = await service.delete_all()

    _run(_go())
    result = outcome["result"]
    if result.ok:
        console.print(f"[bold green]✅ {result.deleted_count} mensagens excluídas.[/bold green]")
        return
    console.print(
        f"[bold red]❌ Interrompido após {result.deleted_count} de {result.total}:[/bold red] {result.error}"
    )
    raise typer.Exit(code=1)


@app.command(help="Observa a caixa de entrada e exibe cada mensagem nova.")
def watch(
    address: AddressOption = None,
    password: PasswordOption = None,
    interval: Annotated[Optional[float], typer.Option(help="Intervalo entre consultas (mínimo 10s).")] = None,
    mark_as_read: Annotated[Optional[bool], typer.Option("--mark-read/--no-mark-read", help="Marca como lida ao emitir.")] = None,
    skip_existing: Annotated[bool, typer.Option("--skip-existing", help="Não emite o que já está na caixa.")] = False,
) -> None:
    credentials = _require_credentials(address, password)
    base = get_config().trigger
    try:
        trigger_config = TriggerConfig(
            poll_interval=interval if interval is not None else base.poll_interval,
            mark_as_read=base.mark_as_read if mark_as_read is None else mark_as_read,
            first_poll="skip" if skip_existing else base.first_poll,
        )
    except MailFlowException as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise typer.Exit(code=2)

    def _print(message: Message) -> None:
        console.print(f"[bold cyan]📨 {message.subject}[/bold cyan] de {message.sender} ({message.id})")

    async def _go() -> None:
        async with _client(credentials) as client:
            trigger = TriggerLoop(client, _print, trigger_config)
            trigger.start(run_immediately=True)
            console.print(f"[bold cyan]👀 Observando {address} a cada {trigger_config.poll_interval}s (Ctrl+C para sair)[/bold cyan]")
            try:
                await trigger.join()
            finally:
                trigger.stop()
                await trigger.join()

    try:
        _run(_go())
    except KeyboardInterrupt:
        console.print("[yellow]Encerrado.[/yellow]")


@app.command("apply-rules", help="Aplica regras (YAML/JSON) a todas as mensagens.")
def apply_rules(
    rules_file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Arquivo de regras.")],
    address: AddressOption = None,
    password: PasswordOption = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Só mostra a ação escolhida.")] = False,
    halt_on_error: Annotated[bool, typer.Option("--halt-on-error", help="Para na primeira falha.")] = False,
) -> None:
    credentials = _require_credentials(address, password)

    async def _go() -> None:
        rules = load_rules_file(rules_file)
        async with _client(credentials) as client:
            engine = RuleEngine(client, rules)
            table = Table(title="Regras", show_header=True, header_style="bold magenta")
            table.add_column("Mensagem")
            table.add_column("Regra")
            table.add_column("Ação")
            table.add_column("Resultado")
            if dry_run:
                for message in await client.get_all_messages():
                    rule = engine.evaluate(message)
                    table.add_row(message.id, rule.label if rule else "-", rule.action.value if rule else "-", "simulado")
            else:
                for item in await engine.run(halt_on_error=halt_on_error):
                    if item.ok:
                        o = item.value
                        table.add_row(
                            o.message_id,
                            o.rule.label if o.rule else "-",
                            o.action.value if o.action else "-",
                            "aplicada" if o.applied else "sem efeito",
                        )
                    else:
                        table.add_row(str(item.index), "-", "-", f"[red]{item.error}[/red]")
        for rejected in rules.rejected:
            console.print(f"[yellow]Regra {rejected.index} ignorada:[/yellow] {rejected.reason}")
        console.print(table)

    _run(_go())


if __name__ == "__main__":
    app()
