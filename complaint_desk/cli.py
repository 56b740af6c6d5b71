"""後台管理指令 (建立資料表、建立帳號、範例資料)"""

import asyncio

import click
from pydantic import ValidationError

from complaint_desk.core.database import AsyncSessionLocal, init_models
from complaint_desk.models.complaint import Complaint, ComplaintCategory, ComplaintPriority, ComplaintStatus
from complaint_desk.models.user import UserRoleEnum
from complaint_desk.schemas.user_schema import UserCreate
from complaint_desk.services.auth_service import AuthService
from complaint_desk.utils.tracking import generate_tracking_code

SAMPLE_COMPLAINTS = [
    ("ระบบคอมพิวเตอร์ทำงานช้า", "เครื่องคอมพิวเตอร์ในสำนักงานทำงานช้ามาก โปรแกรมค้าง บางครั้งหน่วงมากจนทำงานไม่ได้",
     ComplaintCategory.TECHNICAL, ComplaintPriority.HIGH, ComplaintStatus.NEW),
    ("พนักงานให้บริการไม่ดี", "พนักงานที่เคาน์เตอร์บริการพูดจาไม่สุภาพ ไม่ช่วยเหลือลูกค้า ทำให้รู้สึกไม่พอใจ",
     ComplaintCategory.PERSONNEL, ComplaintPriority.MEDIUM, ComplaintStatus.IN_PROGRESS),
    ("ห้องน้ำไม่สะอาด", "ห้องน้ำในอาคารสกปรก ไม่มีสบู่ ไม่มีกระดาษทิชชู่ กลิ่นไม่ดี",
     ComplaintCategory.ENVIRONMENT, ComplaintPriority.MEDIUM, ComplaintStatus.RESOLVED),
    ("เครื่องปรินเตอร์เสีย", "เครื่องปรินเตอร์ในแผนกพิมพ์เอกสารไม่ได้ มีข้อความแสดงข้อผิดพลาด ต้องการซ่อมแซม",
     ComplaintCategory.EQUIPMENT, ComplaintPriority.HIGH, ComplaintStatus.IN_PROGRESS),
    ("พื้นลื่นในบริเวณทางเดิน", "พื้นในบริเวณทางเดินชั้น 2 ลื่นมาก เสี่ยงต่อการล้มและอุบัติเหตุ ต้องการแก้ไขด่วน",
     ComplaintCategory.SAFETY, ComplaintPriority.URGENT, ComplaintStatus.NEW),
    ("การเบิกจ่ายงบประมาณล่าช้า", "การอนุมัติงบประมาณและการเบิกจ่ายใช้เวลานานเกินไป ส่งผลต่อการดำเนินงาน",
     ComplaintCategory.FINANCIAL, ComplaintPriority.HIGH, ComplaintStatus.IN_PROGRESS),
    ("ขั้นตอนการอนุมัติเอกสารซับซ้อน", "ขั้นตอนการอนุมัติเอกสารมีหลายขั้นตอนที่ซับซ้อน ใช้เวลานาน ต้องการปรับปรุงระบบ",
     ComplaintCategory.STRUCTURE_SYSTEM, ComplaintPriority.MEDIUM, ComplaintStatus.NEW),
    ("ประกันสังคมไม่ครอบคลุม", "ประกันสังคมไม่ครอบคลุมการรักษาบางประเภท พนักงานต้องจ่ายค่ารักษาเพิ่ม",
     ComplaintCategory.WELFARE_SERVICES, ComplaintPriority.LOW, ComplaintStatus.RESOLVED),
    ("เสนอระบบการทำงานแบบ Hybrid", "เสนอให้มีระบบการทำงานแบบ Hybrid ทำงานที่บ้านและที่สำนักงานสลับกัน เพื่อเพิ่มประสิทธิภาพ",
     ComplaintCategory.PROJECT_IDEA, ComplaintPriority.LOW, ComplaintStatus.NEW),
    ("ขอให้เพิ่มช่องทางการติดต่อ", "ขอให้เพิ่มช่องทางการติดต่อผ่าน Line หรือ Chat bot เพื่อความสะดวกในการสอบถาม",
     ComplaintCategory.OTHER, ComplaintPriority.LOW, ComplaintStatus.CLOSED),
]

async def _seed(admin_in: UserCreate, viewer_in: UserCreate, samples: bool):
    await init_models()
    async with AsyncSessionLocal() as db:
        auth_service = AuthService(db)
        admin = await auth_service.create_user(admin_in)
        viewer = await auth_service.create_user(viewer_in)
        click.echo(f"✓ Users ready: admin={admin.email} viewer={viewer.email}")

        if samples:
            for title, description, category, priority, status in SAMPLE_COMPLAINTS:
                db.add(Complaint(
                    tracking_code=generate_tracking_code(),
                    title=title,
                    description=description,
                    category=category,
                    priority=priority,
                    status=status,
                ))
            await db.commit()
            click.echo(f"✓ Created {len(SAMPLE_COMPLAINTS)} sample complaints")

@click.group()
def cli():
    """Complaint desk CLI tools."""
    pass

@cli.command()
@click.option("--admin-email", default="admin@example.com", show_default=True)
@click.option("--admin-password", default="admin123", show_default=True)
@click.option("--viewer-email", default="viewer@example.com", show_default=True)
@click.option("--viewer-password", default="viewer123", show_default=True)
@click.option("--samples/--no-samples", default=True, help="同時建立範例投訴")
def seed(admin_email: str, admin_password: str, viewer_email: str, viewer_password: str, samples: bool):
    """
    建立資料表、一個 ADMIN 與一個 VIEWER 帳號 (已存在則略過)。

    Example:
        python -m complaint_desk.cli seed --admin-email admin@example.com --admin-password s3cret-pass
    """
    try:
        admin_in = UserCreate(email=admin_email, password=admin_password, role=UserRoleEnum.admin)
        viewer_in = UserCreate(email=viewer_email, password=viewer_password, role=UserRoleEnum.viewer)
    except ValidationError as e:
        raise click.BadParameter(str(e))

    asyncio.run(_seed(admin_in, viewer_in, samples))

if __name__ == "__main__":
    cli()
