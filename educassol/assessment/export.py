"""
Export a reviewed grading result as CSV, HTML or PDF.

Every export uses the reconciled scores: an overridden question shows the
teacher's score, with the AI's original kept alongside it.
"""
import csv
import html
import io
import re
from datetime import datetime

from .grading_result import GradingResult
from .override import calculate_final_score, count_overrides, get_override

CSV_COLUMNS = [
    'Questão', 'Tópico', 'Pontos Obtidos', 'Pontos Máximos', 'Ajustado',
    'Pontos Originais', 'Correto', 'Resposta do Aluno', 'Análise da IA', 'Feedback',
]

UTF8_BOM = '\ufeff'


def _num(value):
    """Render 8.0 as '8' and 7.5 as '7.5'."""
    if value is None:
        return ''
    value = float(value)
    return str(int(value)) if value.is_integer() else f"{value:g}"


def format_export_date(when=None) -> str:
    when = when or datetime.now()
    return when.strftime('%d/%m/%Y %H:%M')


def _student_name(result, student_identifier):
    return result.student_metadata.name or student_identifier or 'Não identificado'


def _question_rows(result: GradingResult):
    for q in result.questions:
        override = get_override(result, q.number)
        yield q, override, override.override_score if override else q.points_awarded


def generate_csv_content(result: GradingResult, exam_title=None, student_identifier=None,
                         exported_at=None) -> str:
    final_score = calculate_final_score(result)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')

    writer.writerow(['Relatório de Avaliação'])
    writer.writerow(['Prova', exam_title or 'Não especificada'])
    writer.writerow(['Aluno', _student_name(result, student_identifier)])
    writer.writerow(['ID do Aluno', result.student_metadata.student_id])
    writer.writerow(['Qualidade da Escrita', result.student_metadata.handwriting_quality.value])
    writer.writerow(['Pontuação Final', f"{_num(final_score)}/{_num(result.max_score)}"])
    writer.writerow(['Data de Exportação', format_export_date(exported_at)])
    writer.writerow([])

    writer.writerow(CSV_COLUMNS)
    for q, override, score in _question_rows(result):
        writer.writerow([
            q.number,
            q.topic,
            _num(score),
            _num(q.max_points),
            'Sim' if override else 'Não',
            _num(override.original_score) if override else '',
            'Sim' if q.is_correct else 'Não',
            q.student_response_transcription,
            q.reasoning,
            q.feedback_for_student,
        ])

    writer.writerow([])
    writer.writerow(['Comentário Geral'])
    writer.writerow([result.summary_comment])

    return buffer.getvalue()


def csv_bytes(result: GradingResult, exam_title=None, student_identifier=None) -> bytes:
    """CSV with a UTF-8 BOM so spreadsheet apps pick the right encoding."""
    content = generate_csv_content(result, exam_title, student_identifier)
    return (UTF8_BOM + content).encode('utf-8')


def export_filename(result: GradingResult, student_identifier=None, ext='csv', timestamp=None) -> str:
    name = result.student_metadata.name or student_identifier or 'aluno'
    safe = re.sub(r'[^a-zA-Z0-9]', '_', name)
    timestamp = timestamp or int(datetime.now().timestamp() * 1000)
    return f"resultado_{safe}_{timestamp}.{ext}"


REPORT_CSS = """
* { box-sizing: border-box; margin: 0; padding: 0; }
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #0F172A; padding: 40px; max-width: 800px; margin: 0 auto; }
.header { text-align: center; margin-bottom: 30px; padding-bottom: 20px; border-bottom: 2px solid #E2E8F0; }
.header h1 { color: #2563EB; font-size: 24px; margin-bottom: 8px; }
.header .exam-title { color: #64748B; font-size: 16px; }
.summary-grid { display: grid; grid-template-columns: repeat(3, 1fr); gap: 16px; margin-bottom: 30px; }
.summary-card { background: #F1F5F9; border-radius: 8px; padding: 16px; }
.summary-card .label { font-size: 12px; color: #64748B; text-transform: uppercase; margin-bottom: 4px; }
.summary-card .value { font-size: 20px; font-weight: 600; color: #0F172A; }
.summary-card .sub { font-size: 12px; color: #64748B; }
.score-card { background: linear-gradient(135deg, #10B981 0%, #059669 100%); color: white; }
.score-card .label, .score-card .sub, .score-card .value { color: white; }
.override-banner { background: #FEF3C7; border: 1px solid #F59E0B; border-radius: 8px; padding: 12px 16px; margin-bottom: 20px; color: #92400E; }
.summary-comment { background: #EFF6FF; border-left: 4px solid #2563EB; padding: 16px; margin-bottom: 30px; border-radius: 0 8px 8px 0; }
.summary-comment h3 { font-size: 14px; color: #2563EB; margin-bottom: 8px; }
.question-card { border: 1px solid #E2E8F0; border-radius: 8px; padding: 20px; margin-bottom: 16px; page-break-inside: avoid; }
.question-header { display: flex; align-items: center; gap: 12px; margin-bottom: 12px; flex-wrap: wrap; }
.question-number { background: #2563EB; color: white; padding: 4px 12px; border-radius: 20px; font-weight: 600; font-size: 14px; }
.question-topic { flex: 1; font-weight: 500; }
.question-score { font-weight: 600; color: #10B981; }
.question-score.overridden { color: #F59E0B; }
.override-badge { background: #FEF3C7; color: #92400E; font-size: 12px; padding: 4px 8px; border-radius: 4px; margin-bottom: 12px; display: inline-block; }
.question-section { margin-bottom: 12px; }
.question-section strong { display: block; font-size: 12px; color: #64748B; text-transform: uppercase; margin-bottom: 4px; }
.question-section p { background: #F8FAFC; padding: 12px; border-radius: 6px; font-size: 14px; }
.question-section.feedback p { background: #F0FDF4; border-left: 3px solid #10B981; }
.footer { text-align: center; margin-top: 40px; padding-top: 20px; border-top: 1px solid #E2E8F0; color: #64748B; font-size: 12px; }
@media print { body { padding: 20px; } .question-card { break-inside: avoid; } }
"""


def _summary(result: GradingResult):
    final_score = calculate_final_score(result)
    max_score = result.max_score
    percentage = (final_score / max_score * 100) if max_score > 0 else 0
    correct = sum(1 for q in result.questions if q.is_correct)
    return final_score, max_score, percentage, correct


def _override_banner_text(count):
    noun = 'nota foi ajustada' if count == 1 else 'notas foram ajustadas'
    return f"{count} {noun} manualmente pelo professor"


def generate_report_html(result: GradingResult, exam_title=None, student_identifier=None,
                         generated_at=None) -> str:
    """Printable HTML report with fixed inline styling."""
    esc = html.escape
    final_score, max_score, percentage, correct = _summary(result)
    overrides = count_overrides(result)
    title = exam_title or 'Prova'

    cards = []
    for q, override, score in _question_rows(result):
        badge = ''
        if override:
            badge = f'<div class="override-badge">Ajustado (original: {_num(override.original_score)} pts)</div>'
        cards.append(
            '<div class="question-card">'
            '<div class="question-header">'
            f'<span class="question-number">Questão {esc(q.number)}</span>'
            f'<span class="question-topic">{esc(q.topic)}</span>'
            f'<span class="question-score{" overridden" if override else ""}">{_num(score)}/{_num(q.max_points)} pts</span>'
            '</div>'
            f'{badge}'
            '<div class="question-section"><strong>Resposta do Aluno:</strong>'
            f'<p>{esc(q.student_response_transcription or "Resposta não identificada")}</p></div>'
            '<div class="question-section"><strong>Análise da IA:</strong>'
            f'<p>{esc(q.reasoning)}</p></div>'
            '<div class="question-section feedback"><strong>Feedback para o Aluno:</strong>'
            f'<p>{esc(q.feedback_for_student)}</p></div>'
            '</div>'
        )

    banner = ''
    if overrides:
        banner = f'<div class="override-banner">{_override_banner_text(overrides)}</div>'

    return (
        '<!DOCTYPE html><html lang="pt-BR"><head><meta charset="UTF-8">'
        f'<title>Resultado da Avaliação - {esc(title)}</title>'
        f'<style>{REPORT_CSS}</style></head><body>'
        '<div class="header"><h1>Resultado da Avaliação</h1>'
        f'<div class="exam-title">{esc(title)}</div></div>'
        '<div class="summary-grid">'
        '<div class="summary-card"><div class="label">Aluno</div>'
        f'<div class="value">{esc(_student_name(result, student_identifier))}</div>'
        f'<div class="sub">ID: {esc(result.student_metadata.student_id or "N/A")}</div></div>'
        '<div class="summary-card score-card"><div class="label">Pontuação Final</div>'
        f'<div class="value">{final_score:.1f} / {_num(max_score)}</div>'
        f'<div class="sub">{percentage:.1f}% de aproveitamento</div></div>'
        '<div class="summary-card"><div class="label">Questões</div>'
        f'<div class="value">{correct} / {len(result.questions)}</div>'
        '<div class="sub">corretas</div></div>'
        '</div>'
        f'{banner}'
        '<div class="summary-comment"><h3>Comentário Geral</h3>'
        f'<p>{esc(result.summary_comment)}</p></div>'
        '<h2 style="margin-bottom: 16px; font-size: 18px;">Detalhamento por Questão</h2>'
        f'{"".join(cards)}'
        f'<div class="footer"><p>Relatório gerado em {format_export_date(generated_at)} • Educassol</p></div>'
        '</body></html>'
    )


def generate_report_pdf(result: GradingResult, exam_title=None, student_identifier=None,
                        generated_at=None) -> bytes:
    """The same report rendered to PDF bytes with reportlab."""
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.units import inch
    from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
    from reportlab.lib.enums import TA_CENTER
    from reportlab.lib.colors import HexColor
    from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, KeepTogether

    esc = html.escape
    final_score, max_score, percentage, correct = _summary(result)
    overrides = count_overrides(result)

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'ReportTitle', parent=styles['Heading1'],
        alignment=TA_CENTER, textColor=HexColor('#2563EB'), fontSize=18, spaceAfter=4
    )
    subtitle_style = ParagraphStyle(
        'ReportSubtitle', parent=styles['Normal'],
        alignment=TA_CENTER, textColor=HexColor('#64748B'), spaceAfter=12
    )
    heading_style = ParagraphStyle(
        'QuestionHeading', parent=styles['Heading3'], spaceBefore=10, spaceAfter=4
    )
    label_style = ParagraphStyle(
        'Label', parent=styles['Normal'], fontSize=8, textColor=HexColor('#64748B')
    )
    normal_style = styles['Normal']
    banner_style = ParagraphStyle(
        'Banner', parent=styles['Normal'], textColor=HexColor('#92400E'),
        backColor=HexColor('#FEF3C7'), borderPadding=6, spaceBefore=6, spaceAfter=10
    )

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        topMargin=0.6*inch, bottomMargin=0.6*inch,
        leftMargin=0.75*inch, rightMargin=0.75*inch,
        title=f"Resultado da Avaliação - {exam_title or 'Prova'}",
    )

    story = [
        Paragraph('Resultado da Avaliação', title_style),
        Paragraph(esc(exam_title or 'Prova'), subtitle_style),
    ]

    summary = Table([
        ['Aluno', 'Pontuação Final', 'Questões corretas'],
        [
            Paragraph(esc(_student_name(result, student_identifier)), normal_style),
            f"{final_score:.1f} / {_num(max_score)} ({percentage:.1f}%)",
            f"{correct} / {len(result.questions)}",
        ],
    ], colWidths=[2.4*inch, 2.2*inch, 1.9*inch])
    summary.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), HexColor('#F1F5F9')),
        ('TEXTCOLOR', (0, 0), (-1, 0), HexColor('#64748B')),
        ('FONTSIZE', (0, 0), (-1, 0), 8),
        ('BOX', (0, 0), (-1, -1), 0.5, HexColor('#E2E8F0')),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ]))
    story.append(summary)
    story.append(Spacer(1, 0.15*inch))

    if overrides:
        story.append(Paragraph(_override_banner_text(overrides), banner_style))

    story.append(Paragraph('<b>Comentário Geral</b>', normal_style))
    story.append(Paragraph(esc(result.summary_comment), normal_style))
    story.append(Spacer(1, 0.15*inch))

    for q, override, score in _question_rows(result):
        block = [Paragraph(
            f"Questão {esc(q.number)}: {esc(q.topic)} ({_num(score)}/{_num(q.max_points)} pts)",
            heading_style
        )]
        if override:
            block.append(Paragraph(f"Ajustado (original: {_num(override.original_score)} pts)", banner_style))
        for label, text in (
            ('RESPOSTA DO ALUNO', q.student_response_transcription or 'Resposta não identificada'),
            ('ANÁLISE DA IA', q.reasoning),
            ('FEEDBACK PARA O ALUNO', q.feedback_for_student),
        ):
            block.append(Paragraph(label, label_style))
            block.append(Paragraph(esc(text), normal_style))
        story.append(KeepTogether(block))

    story.append(Spacer(1, 0.3*inch))
    story.append(Paragraph(f"Relatório gerado em {format_export_date(generated_at)} • Educassol", label_style))

    doc.build(story)
    return buffer.getvalue()
