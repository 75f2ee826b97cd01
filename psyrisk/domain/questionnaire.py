"""
Static questionnaire definition: ten psychosocial risk dimensions, their
polarity, the ordered items of each and the five-point answer scale.

Loaded once at import time and never mutated.
"""

from __future__ import annotations

from ..infrastructure.exceptions import DimensionNotFoundError, NotFoundError
from .models import Dimension, Item, RoleLevel

# fmt: off
DIMENSIONS: tuple[Dimension, ...] = (
    Dimension(
        id=1,
        title="Grupo 1 - Demandas no Trabalho",
        domain="Demandas no Trabalho",
        description="Avaliação das exigências quantitativas e ritmo de trabalho",
        polarity="negative",
        items=(
            Item("Q1", "Com que frequência você tem muito serviço pra fazer?", "Com que frequência você tem um volume elevado de trabalho?"),
            Item("Q2", "Com que frequência você não dá conta de terminar tudo que precisa fazer?", "Com que frequência você não consegue completar todas as suas tarefas?"),
            Item("Q3", "Com que frequência você precisa trabalhar correndo?", "Com que frequência você precisa trabalhar em ritmo acelerado?"),
            Item("Q4", "Com que frequência seu serviço exige que você faça as coisas muito rápido?", "Com que frequência seu trabalho exige que você execute as tarefas com alta velocidade?"),
            Item("Q5", "Com que frequência você fica atrasado no serviço?", "Com que frequência você fica para trás com suas entregas/trabalho?"),
            Item("Q6", "Com que frequência você tem tempo suficiente pra fazer tudo que precisa?", "Com que frequência você dispõe de tempo adequado para concluir suas tarefas?", reversed=True),
            Item("Q7", "Com que frequência seu serviço exige que você fique o tempo todo ligado/antenado?", "Com que frequência seu trabalho exige atenção constante?"),
            Item("Q8", "Com que frequência o trabalho te deixa emocionalmente acabado?", "Com que frequência seu trabalho te deixa emocionalmente esgotado?"),
            Item("Q9", "Com que frequência o trabalho te deixa com o corpo moído/cansado?", "Com que frequência seu trabalho te deixa fisicamente exaurido?"),
            Item("Q10", "Com que frequência você precisa esconder o que está sentindo?", "Com que frequência você precisa ocultar seus sentimentos no trabalho?"),
            Item("Q11", "Com que frequência você lida com situações que mexem com suas emoções?", "Com que frequência você enfrenta situações emocionalmente desafiadoras?"),
        ),
    ),
    Dimension(
        id=2,
        title="Grupo 2 - Organização e Conteúdo",
        domain="Organização e Conteúdo do Trabalho",
        description="Influência, desenvolvimento de habilidades e significado do trabalho",
        polarity="positive",
        items=(
            Item("Q12", "Você consegue ter alguma palavra sobre quanta coisa te passam pra fazer?", "Você pode influenciar a quantidade de trabalho que lhe é atribuída?"),
            Item("Q13", "Você consegue decidir o que faz no trabalho?", "Você pode influenciar as atividades que realiza no trabalho?"),
            Item("Q14", "Você tem liberdade pra decidir como faz o seu serviço?", "Você tem influência sobre a forma como executa seu trabalho?"),
            Item("Q15", "Seu serviço exige que você tome a frente e faça as coisas acontecerem?", "Seu trabalho exige que você tome iniciativa?"),
            Item("Q16", "Você consegue usar o que sabe e suas habilidades no dia a dia do trabalho?", "Você pode aplicar suas competências e expertise no trabalho?"),
            Item("Q17", "Você tem chance de aprender coisas novas e crescer no trabalho?", "Você tem oportunidades de desenvolvimento pessoal no trabalho?"),
            Item("Q18", "Você acha que o seu trabalho tem sentido/faz diferença?", "Você considera seu trabalho significativo?"),
            Item("Q19", "Você sente que o que você faz é importante?", "Você sente que o trabalho que realiza é importante?"),
        ),
    ),
    Dimension(
        id=3,
        title="Grupo 3 - Relações Interpessoais",
        domain="Relações Sociais e Liderança",
        description="Apoio social, feedback e reconhecimento no trabalho",
        polarity="positive",
        items=(
            Item("Q20", "Com que frequência os colegas te ajudam e te dão apoio?", "Com que frequência você recebe ajuda e suporte dos colegas?"),
            Item("Q21", "Com que frequência os colegas param pra te ouvir quando você tem problema no trabalho?", "Com que frequência seus colegas estão dispostos a ouvir seus problemas relacionados ao trabalho?"),
            Item("Q22", "Com que frequência seu chefe direto te ajuda e te apoia?", "Com que frequência você recebe ajuda e suporte do seu superior imediato?"),
            Item("Q23", "Seu chefe direto se preocupa se você está satisfeito no trabalho?", "Seu superior imediato prioriza a satisfação no trabalho?"),
            Item("Q24", "Seu chefe direto é bom em organizar e planejar o serviço?", "Seu superior imediato é bom em planejar o trabalho?"),
            Item("Q25", "Seu chefe direto é bom em resolver briga/discussão no time?", "Seu superior imediato é bom em resolver conflitos?"),
            Item("Q26", "Você recebe reconhecimento quando se esforça no trabalho?", "Você recebe reconhecimento pelo esforço realizado no trabalho?"),
            Item("Q27", "Você recebe retorno/feedback sobre como está indo no trabalho?", "Você recebe feedback sobre seu desempenho?"),
            Item("Q28", "Seu trabalho é respeitado pelos colegas e chefes?", "Seu trabalho é valorizado por colegas e superiores?"),
        ),
    ),
    Dimension(
        id=4,
        title="Grupo 4 - Interface Trabalho-Indivíduo",
        domain="Interface Trabalho-Indivíduo",
        description="Insegurança no trabalho e conflito trabalho-família",
        polarity="negative",
        items=(
            Item("Q29", "Você está preocupado em ficar desempregado?", "Você está preocupado com a possibilidade de desemprego?"),
            Item("Q30", "Você tem medo que mudanças no trabalho piorem sua situação?", "Você está preocupado que mudanças organizacionais prejudiquem sua situação profissional?"),
            Item("Q31", "Você tem medo de ser transferido pra outro lugar sem querer?", "Você está preocupado com a possibilidade de transferência contra sua vontade?"),
            Item("Q32", "Depois do trabalho, você ainda tem energia pra ficar com família e amigos?", "Você tem energia suficiente para família e amigos no tempo livre?", reversed=True),
            Item("Q33", "O trabalho toma o tempo que você queria passar com família e amigos?", "Seu trabalho consome tempo que gostaria de dedicar à família e amigos?"),
            Item("Q34", "Você acha que o trabalho está atrapalhando sua vida pessoal?", "Você sente que seu trabalho prejudica sua vida privada?"),
        ),
    ),
    Dimension(
        id=5,
        title="Grupo 5 - Valores no Trabalho",
        domain="Valores Organizacionais",
        description="Confiança, justiça e respeito mútuo na organização",
        polarity="positive",
        items=(
            Item("Q35", "Os funcionários escondem coisas uns dos outros?", "Os colaboradores ocultam informações entre si?", reversed=True),
            Item("Q36", "Os funcionários escondem coisas da chefia?", "Os colaboradores ocultam informações da gestão?", reversed=True),
            Item("Q37", "A chefia confia que os funcionários vão fazer o serviço direito?", "A gestão confia que os colaboradores realizem bem seu trabalho?"),
            Item("Q38", "Os funcionários confiam nas informações que vêm da chefia?", "Os colaboradores confiam nas informações fornecidas pela gestão?"),
            Item("Q39", "Quando rola briga, ela é resolvida de forma justa?", "Os conflitos são resolvidos de maneira justa?"),
            Item("Q40", "O serviço é dividido de forma justa entre todo mundo?", "A distribuição das tarefas é feita de forma justa?"),
            Item("Q41", "Quem faz um bom trabalho é valorizado?", "Os colaboradores são reconhecidos quando realizam um bom trabalho?"),
            Item("Q42", "Todo mundo é tratado do mesmo jeito, de forma justa?", "Todos os colaboradores são tratados de forma equitativa?"),
        ),
    ),
    Dimension(
        id=6,
        title="Grupo 6 - Personalidade (Opcional)",
        domain="Traços de Personalidade",
        description="Autoeficácia e autoconfiança",
        polarity="positive",
        items=(
            Item("Q43", "Eu sempre consigo resolver problemas difíceis se eu me esforçar bastante", "Eu consigo resolver problemas difíceis se eu me esforçar o suficiente"),
            Item("Q44", "Se alguém me impedir, eu dou um jeito de conseguir o que quero", "Se alguém se opuser, consigo encontrar meios de alcançar o que desejo"),
            Item("Q45", "É fácil pra mim continuar firme nas minhas metas e conseguir alcançá-las", "É fácil para mim manter o foco nas metas e atingir meus objetivos"),
            Item("Q46", "Eu me sinto seguro de que consigo lidar bem com coisas inesperadas", "Estou confiante de que posso lidar eficientemente com eventos inesperados"),
            Item("Q47", "Eu fico calmo quando aparece dificuldade porque confio no que eu sei", "Consigo permanecer calmo diante de dificuldades porque confio nas minhas habilidades"),
        ),
    ),
    Dimension(
        id=7,
        title="Grupo 7 - Saúde e Bem-Estar",
        domain="Saúde e Bem-Estar",
        description="Avaliação de estresse, burnout e sintomas somáticos",
        polarity="negative",
        items=(
            Item("Q48", "Com que frequência você se sentiu estressado?", "Com que frequência você se sentiu estressado?"),
            Item("Q49", "Com que frequência você ficou irritado ou muito tenso?", "Com que frequência você se sentiu irritável ou tenso?"),
            Item("Q50", "Com que frequência você teve dificuldade pra relaxar?", "Com que frequência você teve dificuldade para relaxar?"),
            Item("Q51", "Com que frequência você se sentiu cansado?", "Com que frequência você se sentiu fatigado?"),
            Item("Q52", "Com que frequência você teve problema pra dormir?", "Com que frequência você apresentou dificuldades para dormir?"),
            Item("Q53", "Com que frequência você teve dor de cabeça?", "Com que frequência você teve cefaleias?"),
            Item("Q54", "Com que frequência você teve dor nos músculos ou no corpo?", "Com que frequência você teve dores musculares?"),
            Item("Q55", "Com que frequência você sentiu que não aguenta mais?", "Com que frequência você sentiu que não consegue continuar?"),
        ),
    ),
    Dimension(
        id=8,
        title="Grupo 8 - Comportamentos Ofensivos",
        domain="Comportamentos Ofensivos",
        description="Exposição a assédio e violência no trabalho",
        polarity="negative",
        items=(
            Item("Q56", "Você sofreu assédio sexual no trabalho?", "Você foi submetido a assédio sexual no ambiente de trabalho?"),
            Item("Q57", "Você sofreu ameaças de violência no trabalho?", "Você foi submetido a ameaças de violência no trabalho?"),
            Item("Q58", "Você sofreu violência física no trabalho?", "Você foi vítima de violência física no trabalho?"),
        ),
    ),
    Dimension(
        id=9,
        title="Grupo 9 - Jogos de Apostas",
        domain="Comportamento de Jogo",
        description="Comportamentos relacionados a jogos de azar",
        polarity="negative",
        items=(
            Item("Q59", "Você fez apostas em jogos de azar (bet, loteria, jogo do bicho, cassino online etc.)?", "Você realizou apostas em jogos de azar (ex.: apostas esportivas, loterias, jogo do bicho, cassinos online)?"),
            Item("Q60", "Você sentiu que precisava apostar mais dinheiro pra sentir a mesma emoção?", "Você sentiu necessidade de aumentar o valor das apostas para obter a mesma excitação?"),
            Item("Q61", "Mesmo perdendo dinheiro, você continuou apostando?", "Você persistiu nas apostas mesmo após perdas financeiras?"),
            Item("Q62", "Pensar em apostas atrapalhou seu rendimento no trabalho?", "Os pensamentos sobre apostas prejudicaram seu desempenho profissional?"),
            Item("Q63", "Você escondeu de colegas ou da família quanto dinheiro apostava?", "Você ocultou de colegas ou familiares o montante apostado?"),
            Item("Q64", "Você usou o celular ou horário de trabalho pra fazer apostas?", "Você utilizou tempo de trabalho (celular, intervalos) para realizar apostas?"),
        ),
    ),
    Dimension(
        id=10,
        title="Grupo 10 - Endividamento",
        domain="Endividamento Financeiro",
        description="Nível de endividamento e estresse financeiro",
        polarity="negative",
        items=(
            Item("Q65", "Você ficou preocupado com dívidas ou contas pra pagar?", "Você se sentiu preocupado com dívidas ou pagamento de contas?"),
            Item("Q66", "O estresse com dívidas atrapalhou sua concentração no trabalho?", "O estresse financeiro afetou sua concentração no trabalho?"),
            Item("Q67", "Você deixou de pagar conta de luz, água ou comida por falta de dinheiro?", "Você deixou de pagar contas essenciais (água, luz, alimentação) por insuficiência financeira?"),
            Item("Q68", "Você precisou pegar empréstimo (banco, agiota ou familiar) pra pagar as contas?", "Você precisou contrair empréstimos (bancário, agiota ou familiar) para cobrir despesas?"),
            Item("Q69", "Brigas ou conversas sobre dinheiro com família ou colegas estragaram seu humor no trabalho?", "Discussões sobre dinheiro com família ou colegas impactaram negativamente seu humor no trabalho?"),
            Item("Q70", "Você sente que suas dívidas estão fora de controle?", "Você sente que seu nível de endividamento está fora de controle?"),
        ),
    ),
)
# fmt: on

ANSWER_SCALE: dict[str, int] = {
    "Never": 0,
    "Rarely": 25,
    "Sometimes": 50,
    "Often": 75,
    "Always": 100,
}
SCALE_VALUES: frozenset[int] = frozenset(ANSWER_SCALE.values())

DIMENSION_COUNT = len(DIMENSIONS)

_BY_ID: dict[int, Dimension] = {d.id: d for d in DIMENSIONS}
_DIMENSION_BY_ITEM: dict[str, Dimension] = {item.id: d for d in DIMENSIONS for item in d.items}


def get_dimension(dimension_id: int) -> Dimension:
    """Return the dimension with the given id or raise DimensionNotFoundError."""
    try:
        return _BY_ID[dimension_id]
    except (KeyError, TypeError):
        raise DimensionNotFoundError(dimension_id) from None


def dimension_for_item(item_id: str) -> Dimension:
    try:
        return _DIMENSION_BY_ITEM[item_id]
    except KeyError:
        raise NotFoundError(item_id, entity="Item") from None


def is_scale_value(value: object) -> bool:
    # bool is an int subclass; True must not pass as 1
    return isinstance(value, int) and not isinstance(value, bool) and value in SCALE_VALUES


def item_text(item: Item, role: RoleLevel) -> str:
    """Phrasing shown to a respondent; management gets its own wording when defined."""
    if role == "management" and item.management_text:
        return item.management_text
    return item.text


def questions_for_role(role: RoleLevel) -> list[dict]:
    """The whole questionnaire with item text resolved for one role level."""
    return [
        {
            "id": d.id,
            "title": d.title,
            "domain": d.domain,
            "description": d.description,
            "polarity": d.polarity,
            "items": [{"id": item.id, "text": item_text(item, role)} for item in d.items],
        }
        for d in DIMENSIONS
    ]
