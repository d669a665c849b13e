from __future__ import annotations

from datetime import date

from app.schemas.school import Configuracao
from app.services.overview import (
    SEM_JUSTIFICATIVA,
    absence_alerts,
    consistency_report,
    daily_summary,
    student_history,
)

TODAY = date(2024, 5, 13)


def _presenca(aluno_id, day, status, nome="Ana Souza", turma="1º Ano A"):
    return {
        "aluno_id": aluno_id,
        "data": day,
        "status": status,
        "alunos": {"nome_completo": nome, "turmas": {"nome_turma": turma}},
    }


def test_daily_summary_counts_and_lists_absences():
    rows = [
        {"status": "presente", "justificativa": None, "alunos": {"id": 1, "nome_completo": "Ana"}, "turmas": {"nome_turma": "2º Ano 10"}},
        {"status": "falta", "justificativa": None, "alunos": {"id": 2, "nome_completo": "Bruno"}, "turmas": {"nome_turma": "2º Ano 10"}},
        {"status": "falta", "justificativa": "Atestado", "alunos": {"id": 3, "nome_completo": "Carla"}, "turmas": {"nome_turma": "2º Ano 9"}},
    ]

    summary = daily_summary(rows)

    assert summary["presentes"] == 1
    assert summary["faltas"] == 2
    assert [a["aluno_id"] for a in summary["ausentes"]] == [3, 2]
    assert summary["ausentes"][1]["justificativa"] == SEM_JUSTIFICATIVA


def test_daily_summary_of_an_empty_day():
    assert daily_summary([]) == {"presentes": 0, "faltas": 0, "ausentes": []}


def test_consistency_report():
    alunos = [
        {"id": 1, "nome_completo": "Ana", "turma_id": None, "status": "ativo"},
        {"id": 2, "nome_completo": "Bruno", "turma_id": None, "status": "inativo"},
        {"id": 3, "nome_completo": "Carla", "turma_id": 99, "status": "ativo"},
        {"id": 4, "nome_completo": "Davi", "turma_id": 10, "status": "ativo"},
    ]
    professores = [
        {"user_uid": "u1", "nome": "Paula"},
        {"user_uid": "u2", "nome": "Rui"},
    ]
    vinculos = [{"professor_id": "u1"}]
    turmas = [
        {"id": 10, "nome_turma": "1º Ano A", "ano_letivo": 2024},
        {"id": 11, "nome_turma": "1º Ano A", "ano_letivo": 2024},
        {"id": 12, "nome_turma": "1º Ano A", "ano_letivo": 2025},
    ]

    report = consistency_report(alunos, professores, vinculos, turmas)

    assert [a["id"] for a in report["alunos_sem_turma"]["itens"]] == [1]
    assert [a["id"] for a in report["alunos_orfaos"]["itens"]] == [3]
    assert [p["user_uid"] for p in report["professores_sem_turma"]["itens"]] == ["u2"]
    assert report["turmas_duplicadas"]["itens"] == [
        {"nome_turma": "1º Ano A", "ano_letivo": 2024, "count": 2},
    ]


def test_consistency_lists_are_capped_but_totals_are_not():
    alunos = [{"id": i, "nome_completo": f"Aluno {i}", "turma_id": None, "status": "ativo"} for i in range(5)]

    report = consistency_report(alunos, [], [], [], limit=2)

    assert report["alunos_sem_turma"]["total"] == 5
    assert len(report["alunos_sem_turma"]["itens"]) == 2


def test_student_history_totals():
    rows = [
        {"data": "2024-05-13", "status": "presente"},
        {"data": "2024-05-10", "status": "falta"},
        {"data": "2024-05-09", "status": "presente"},
        {"data": "2024-05-08", "status": "presente"},
    ]

    history = student_history(rows)

    assert (history["presencas"], history["faltas"], history["assiduidade"]) == (3, 1, 75)


def test_assiduidade_rounds_half_up_and_handles_no_rows():
    rows = [{"status": "presente"}] + [{"status": "falta"}] * 7
    assert student_history(rows)["assiduidade"] == 13  # 12.5%
    assert student_history([])["assiduidade"] == 0


def test_consecutive_absence_alert():
    config = Configuracao(faltas_consecutivas=3, alerta_faltas_ativo=True)
    rows = [
        _presenca(1, "2024-05-13", "falta"),
        _presenca(1, "2024-05-10", "falta"),
        _presenca(1, "2024-05-09", "falta"),
        _presenca(1, "2024-05-08", "presente"),
        _presenca(2, "2024-05-13", "falta", nome="Bruno"),
        _presenca(2, "2024-05-10", "presente", nome="Bruno"),
        _presenca(2, "2024-05-09", "falta", nome="Bruno"),
    ]

    alerts = absence_alerts(rows, config, TODAY, acompanhados={1})

    assert [a["aluno_id"] for a in alerts] == [1]
    assert alerts[0]["motivos"] == ["3 faltas consecutivas"]
    assert alerts[0]["em_acompanhamento"] is True
    assert alerts[0]["turma"] == "1º Ano A"


def test_scattered_absences_inside_the_window():
    config = Configuracao(faltas_intercaladas=2, faltas_dias=7, alerta_faltas_ativo=True)
    rows = [
        _presenca(1, "2024-05-13", "falta"),
        _presenca(1, "2024-05-10", "presente"),
        _presenca(1, "2024-05-08", "falta"),
        # outside the 7-day window
        _presenca(2, "2024-05-13", "falta", nome="Bruno"),
        _presenca(2, "2024-04-30", "falta", nome="Bruno"),
    ]

    alerts = absence_alerts(rows, config, TODAY)

    assert [a["aluno_id"] for a in alerts] == [1]
    assert alerts[0]["motivos"] == ["2 faltas nos últimos 7 dias"]
    assert alerts[0]["em_acompanhamento"] is False


def test_no_thresholds_no_alerts():
    rows = [_presenca(1, "2024-05-13", "falta")]
    assert absence_alerts(rows, Configuracao(alerta_faltas_ativo=True), TODAY) == []
