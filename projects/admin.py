from django.contrib import admin

from .models import Agent, AgentWorkflow, Project, ProjectMember


class ProjectMemberInline(admin.TabularInline):
    model = ProjectMember
    extra = 0


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "is_active", "created_at")
    search_fields = ("name",)
    list_filter = ("is_active",)
    inlines = [ProjectMemberInline]


@admin.register(Agent)
class AgentAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "project")
    search_fields = ("name",)


@admin.register(AgentWorkflow)
class AgentWorkflowAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "agent", "is_active", "updated_at")
    list_filter = ("is_active",)
